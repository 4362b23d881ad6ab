"""
Discovery manager - runs the blocking broadcast scan off the event loop
"""

import asyncio
import logging
import time
from typing import Dict, Optional

from .models import DiscoveryResult
from .network_discovery import scan_network, DISCOVERY_PORT, BROADCAST_ADDRESS, RECV_BUFFER_SIZE

logger = logging.getLogger(__name__)


class AccessPointDiscovery:
    """Main discovery service for access points on the local subnet"""

    def __init__(self, config: Dict):
        self.config = config
        self.discovery_timeout = config.get('timeout_seconds', 5)
        self.port = config.get('port', DISCOVERY_PORT)
        self.broadcast_address = config.get('broadcast_address', BROADCAST_ADDRESS)
        self.buffer_size = config.get('recv_buffer_size', RECV_BUFFER_SIZE)

    async def scan(self, timeout: Optional[float] = None) -> DiscoveryResult:
        """
        Run one broadcast scan on a worker thread.

        Every call opens its own socket; results are never merged across scans.
        ScanError from socket setup propagates to the caller.
        """
        timeout = self.discovery_timeout if timeout is None else timeout
        logger.info(f"[LAUNCH] Starting broadcast discovery ({timeout}s window)...")
        start_time = time.time()

        devices = await asyncio.to_thread(
            scan_network,
            timeout,
            self.port,
            self.broadcast_address,
            self.buffer_size,
        )

        duration = time.time() - start_time
        if devices:
            logger.info(f"[UDP DISCOVERY PHASE] IPs: {', '.join(d.reachable_address for d in devices)}")
        else:
            logger.info("[UDP DISCOVERY PHASE] No access points answered the broadcast")

        return DiscoveryResult(
            devices=devices,
            method="udp_broadcast",
            duration_seconds=duration,
            device_count=len(devices),
        )
