"""
UDP broadcast discovery for access points
"""

import socket
import time
import logging
from typing import Callable, List

from .frame_codec import encode_probe, decode_response
from .models import DiscoveredDevice, ScanError

logger = logging.getLogger(__name__)

DISCOVERY_PORT = 10001
BROADCAST_ADDRESS = '255.255.255.255'
RECV_BUFFER_SIZE = 4096


def scan_network(timeout: float = 5.0,
                 port: int = DISCOVERY_PORT,
                 broadcast_address: str = BROADCAST_ADDRESS,
                 buffer_size: int = RECV_BUFFER_SIZE,
                 socket_factory: Callable[..., socket.socket] = socket.socket) -> List[DiscoveredDevice]:
    """
    Broadcast one discovery probe and collect responses until `timeout` elapses.

    Blocking. Socket setup and send failures raise ScanError. A receive error
    other than a timeout ends collection early and returns what was found.
    Devices are deduplicated by MAC, first response wins.
    """
    try:
        sock = socket_factory(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    except OSError as e:
        raise ScanError(f"Failed to create socket: {e}") from e

    try:
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError as e:
            raise ScanError(f"Failed to enable broadcast: {e}") from e

        try:
            sock.bind(('', 0))
        except OSError as e:
            raise ScanError(f"Failed to bind socket: {e}") from e

        try:
            sock.sendto(encode_probe(), (broadcast_address, port))
        except OSError as e:
            raise ScanError(f"Failed to send discovery packet: {e}") from e

        logger.info(f"[SCAN] Sent discovery broadcast to {broadcast_address}:{port}")
        return _collect_responses(sock, timeout, buffer_size)

    finally:
        sock.close()


def _collect_responses(sock: socket.socket, timeout: float, buffer_size: int) -> List[DiscoveredDevice]:
    devices: List[DiscoveredDevice] = []
    seen_macs = set()
    deadline = time.monotonic() + timeout

    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break

        try:
            sock.settimeout(remaining)
            data, addr = sock.recvfrom(buffer_size)
        except (socket.timeout, BlockingIOError):
            break
        except OSError as e:
            logger.warning(f"[SCAN] recvfrom error, stopping early: {e}")
            break

        source_ip = addr[0]
        logger.info(f"[SCAN] Received {len(data)} bytes from {source_ip}")

        device = decode_response(data, source_ip)
        if device is None:
            logger.debug(f"[SCAN] Ignoring response without MAC from {source_ip}")
            continue

        if device.mac in seen_macs:
            continue

        seen_macs.add(device.mac)
        devices.append(device)
        logger.info(f"[SCAN] Found {device.model or 'device'} {device.mac} at {device.reachable_address}")

    logger.info(f"[SCAN] Discovery complete: found {len(devices)} device(s)")
    return devices
