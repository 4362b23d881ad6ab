"""
Tests for the UDP broadcast scanner

Sockets are replaced with mocks; nothing is sent on the network.
"""

import socket
import struct
from unittest.mock import MagicMock

import pytest

from discovery import AccessPointDiscovery, ScanError
from discovery.network_discovery import scan_network
from discovery.frame_codec import encode_probe


def frame(mac_bytes: bytes, model: bytes = b'UAL6') -> bytes:
    return (b'\x01\x00\x00\x00'
            + struct.pack('>BH', 0x01, 6) + mac_bytes
            + struct.pack('>BH', 0x14, len(model)) + model)


MAC_A = bytes([0xAA, 0xBB, 0xCC, 0xDD, 0xEE, 0x01])
MAC_B = bytes([0xAA, 0xBB, 0xCC, 0xDD, 0xEE, 0x02])


def make_socket(recv_results):
    sock = MagicMock()
    sock.recvfrom.side_effect = recv_results
    return sock


def factory_for(sock):
    return MagicMock(return_value=sock)


# ===== scan_network Tests =====

class TestScanNetwork:
    """Tests for the blocking scan loop"""

    def test_sends_probe_to_broadcast(self):
        sock = make_socket([socket.timeout()])
        scan_network(timeout=1, socket_factory=factory_for(sock))

        sock.setsockopt.assert_called_once_with(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind.assert_called_once_with(('', 0))
        sock.sendto.assert_called_once_with(encode_probe(), ('255.255.255.255', 10001))
        sock.close.assert_called_once()

    def test_collects_devices_until_timeout(self):
        sock = make_socket([
            (frame(MAC_A), ('10.0.0.11', 10001)),
            (frame(MAC_B, b'U7PG2'), ('10.0.0.12', 10001)),
            socket.timeout(),
        ])
        devices = scan_network(timeout=5, socket_factory=factory_for(sock))

        assert [d.mac for d in devices] == ['AA:BB:CC:DD:EE:01', 'AA:BB:CC:DD:EE:02']
        assert devices[1].model == 'U7PG2'

    def test_dedup_keeps_first_reachable_address(self):
        """Same MAC from two sources yields one record with the first address"""
        sock = make_socket([
            (frame(MAC_A), ('10.0.0.11', 10001)),
            (frame(MAC_A), ('192.168.99.2', 10001)),
            socket.timeout(),
        ])
        devices = scan_network(timeout=5, socket_factory=factory_for(sock))

        assert len(devices) == 1
        assert devices[0].reachable_address == '10.0.0.11'

    def test_uses_source_address_not_payload(self):
        payload = frame(MAC_A) + struct.pack('>BH', 0x02, 4) + bytes([203, 0, 113, 7])
        sock = make_socket([(payload, ('10.0.0.11', 10001)), socket.timeout()])
        devices = scan_network(timeout=5, socket_factory=factory_for(sock))

        assert devices[0].reachable_address == '10.0.0.11'
        assert devices[0].reported_address == '203.0.113.7'

    def test_malformed_frames_dropped(self):
        sock = make_socket([
            (b'\x00\x00', ('10.0.0.50', 10001)),
            (b'\x01\x00\x00\x00' + struct.pack('>BH', 0x14, 3) + b'AP1', ('10.0.0.51', 10001)),
            (frame(MAC_B), ('10.0.0.12', 10001)),
            socket.timeout(),
        ])
        devices = scan_network(timeout=5, socket_factory=factory_for(sock))
        assert [d.reachable_address for d in devices] == ['10.0.0.12']

    def test_would_block_ends_loop(self):
        sock = make_socket([(frame(MAC_A), ('10.0.0.11', 10001)), BlockingIOError()])
        devices = scan_network(timeout=5, socket_factory=factory_for(sock))
        assert len(devices) == 1

    def test_receive_error_returns_partial_results(self):
        sock = make_socket([
            (frame(MAC_A), ('10.0.0.11', 10001)),
            ConnectionResetError("reset"),
            (frame(MAC_B), ('10.0.0.12', 10001)),
        ])
        devices = scan_network(timeout=5, socket_factory=factory_for(sock))

        assert [d.mac for d in devices] == ['AA:BB:CC:DD:EE:01']
        sock.close.assert_called_once()

    def test_zero_timeout_does_not_receive(self):
        sock = make_socket([])
        assert scan_network(timeout=0, socket_factory=factory_for(sock)) == []
        sock.recvfrom.assert_not_called()

    def test_socket_creation_failure(self):
        factory = MagicMock(side_effect=OSError("no sockets"))
        with pytest.raises(ScanError, match="Failed to create socket"):
            scan_network(timeout=1, socket_factory=factory)

    def test_bind_failure_closes_socket(self):
        sock = make_socket([])
        sock.bind.side_effect = OSError("address in use")
        with pytest.raises(ScanError, match="Failed to bind socket"):
            scan_network(timeout=1, socket_factory=factory_for(sock))
        sock.close.assert_called_once()

    def test_broadcast_option_failure(self):
        sock = make_socket([])
        sock.setsockopt.side_effect = OSError("not permitted")
        with pytest.raises(ScanError, match="Failed to enable broadcast"):
            scan_network(timeout=1, socket_factory=factory_for(sock))
        sock.close.assert_called_once()

    def test_send_failure(self):
        sock = make_socket([])
        sock.sendto.side_effect = OSError("network unreachable")
        with pytest.raises(ScanError, match="Failed to send discovery packet"):
            scan_network(timeout=1, socket_factory=factory_for(sock))
        sock.close.assert_called_once()


# ===== AccessPointDiscovery Tests =====

class TestAccessPointDiscovery:
    """Tests for the async discovery facade"""

    async def test_scan_runs_with_config(self, monkeypatch):
        calls = []

        def fake_scan(timeout, port, broadcast_address, buffer_size):
            calls.append((timeout, port, broadcast_address, buffer_size))
            return []

        monkeypatch.setattr('discovery.manager.scan_network', fake_scan)
        discovery = AccessPointDiscovery({'timeout_seconds': 3, 'port': 10002,
                                          'broadcast_address': '10.0.0.255'})

        result = await discovery.scan()

        assert calls == [(3, 10002, '10.0.0.255', 4096)]
        assert result.devices == []
        assert result.method == "udp_broadcast"
        assert result.device_count == 0

    async def test_scan_timeout_override(self, monkeypatch):
        seen = {}

        def fake_scan(timeout, *args):
            seen['timeout'] = timeout
            return []

        monkeypatch.setattr('discovery.manager.scan_network', fake_scan)
        await AccessPointDiscovery({}).scan(timeout=1.5)
        assert seen['timeout'] == 1.5

    async def test_scan_error_propagates(self, monkeypatch):
        def failing_scan(*args):
            raise ScanError("Failed to bind socket: denied")

        monkeypatch.setattr('discovery.manager.scan_network', failing_scan)
        with pytest.raises(ScanError):
            await AccessPointDiscovery({}).scan()
