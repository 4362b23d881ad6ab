"""
Discovery module for access point broadcast discovery
"""

from .manager import AccessPointDiscovery
from .models import DiscoveredDevice, DiscoveryResult, ScanError
from .network_discovery import scan_network
from .frame_codec import encode_probe, decode_response

__all__ = ['AccessPointDiscovery', 'DiscoveredDevice', 'DiscoveryResult', 'ScanError',
           'scan_network', 'encode_probe', 'decode_response']
