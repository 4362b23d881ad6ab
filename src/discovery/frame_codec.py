"""
Encoder/decoder for the access point discovery protocol

Request:  4 fixed bytes broadcast to UDP port 10001
Response: 4-byte header followed by TLV records
          (1-byte type, 2-byte big-endian length, value)
"""

import logging
import struct
from typing import Optional

from .models import DiscoveredDevice

logger = logging.getLogger(__name__)

DISCOVERY_PROBE = b'\x01\x00\x00\x00'
HEADER_SIZE = 4
TLV_HEADER_SIZE = 3

# TLV field types
TLV_MAC_ADDRESS = 0x01
TLV_IP_INFO = 0x02
TLV_FIRMWARE = 0x03
TLV_MANAGED = 0x06
TLV_PLATFORM = 0x0B
TLV_MODEL = 0x14


def encode_probe() -> bytes:
    """Return the discovery request payload"""
    return DISCOVERY_PROBE


def is_probe(data: bytes) -> bool:
    """Check whether a payload is exactly the discovery request"""
    return bytes(data) == DISCOVERY_PROBE


def format_mac(raw: bytes) -> str:
    return ':'.join(f'{b:02X}' for b in raw)


def _decode_text(value: bytes) -> str:
    return value.decode('utf-8', errors='replace')


def decode_response(data: bytes, source_address: str) -> Optional[DiscoveredDevice]:
    """
    Parse one discovery response frame.

    Returns None when no MAC field could be decoded. A record whose declared
    length runs past the end of the buffer ends parsing; fields captured
    before it are kept. Unknown field types are skipped by length.
    """
    if len(data) < HEADER_SIZE:
        return None

    mac = None
    reported_address = source_address
    firmware = ""
    model = ""
    hostname = ""
    is_managed = False

    pos = HEADER_SIZE
    end = len(data)

    while end - pos >= TLV_HEADER_SIZE:
        field_type = data[pos]
        (field_len,) = struct.unpack_from('>H', data, pos + 1)
        pos += TLV_HEADER_SIZE

        if pos + field_len > end:
            logger.debug(f"Truncated TLV field 0x{field_type:02X} from {source_address} "
                         f"(declared {field_len}, {end - pos} left)")
            break

        value = data[pos:pos + field_len]
        pos += field_len

        if field_type == TLV_MAC_ADDRESS:
            if field_len == 6:
                mac = format_mac(value)
        elif field_type == TLV_IP_INFO:
            if field_len >= 4:
                reported_address = '.'.join(str(b) for b in value[:4])
        elif field_type == TLV_FIRMWARE:
            firmware = _decode_text(value)
        elif field_type == TLV_MODEL:
            model = _decode_text(value)
        elif field_type == TLV_PLATFORM:
            hostname = _decode_text(value)
        elif field_type == TLV_MANAGED:
            # Presence alone marks the device as managed
            is_managed = True

    if not mac:
        return None

    return DiscoveredDevice(
        mac=mac,
        reachable_address=source_address,
        reported_address=reported_address,
        model=model,
        firmware_version=firmware,
        hostname=hostname,
        is_managed=is_managed,
    )
