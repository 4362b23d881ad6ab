"""
Discovery data structures and models
"""

from typing import List, Dict, Any
from dataclasses import dataclass


class ScanError(Exception):
    """Raised when the discovery socket cannot be set up or the probe cannot be sent"""


@dataclass(frozen=True)
class DiscoveredDevice:
    """Represents an access point that answered the discovery broadcast"""
    mac: str
    reachable_address: str  # UDP source address - the only address used to connect
    reported_address: str   # Address from the payload, display only
    model: str = ""
    firmware_version: str = ""
    hostname: str = ""
    is_managed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the field names the front end expects"""
        return {
            'mac': self.mac,
            'ip': self.reachable_address,
            'reportedIp': self.reported_address,
            'model': self.model,
            'firmware': self.firmware_version,
            'hostname': self.hostname,
            'isManaged': self.is_managed,
        }


@dataclass
class DiscoveryResult:
    """Results from a discovery scan"""
    devices: List[DiscoveredDevice]
    method: str
    duration_seconds: float
    device_count: int
