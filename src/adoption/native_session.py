"""
In-process SSH session using paramiko

Factory-default access points run Dropbear builds that only offer legacy
MODP key exchange groups and sign host keys with SHA-1 even when they
advertise rsa-sha2-256. Offering ssh-rsa first makes both sides agree on
SHA-1 for the host key signature.
"""

import asyncio
import socket
import logging
import threading
from typing import Optional, Tuple

import paramiko

from .models import (
    SessionTarget, SessionOutcome, FailureKind, auth_failed_message,
    DEFAULT_USERNAME, DEFAULT_PASSWORD, SSH_PORT, CONNECT_TIMEOUT_SECONDS,
)
from .output_parser import classify_command_output

logger = logging.getLogger(__name__)

# Order matters: the first algorithm both sides support is used
KEX_ALGORITHMS = (
    "diffie-hellman-group14-sha256",
    "diffie-hellman-group14-sha1",
    "diffie-hellman-group1-sha1",
)

HOST_KEY_ALGORITHMS = (
    "ssh-rsa",
    "rsa-sha2-256",
    "rsa-sha2-512",
    "ssh-ed25519",
    "ecdsa-sha2-nistp256",
)

COMMAND_TIMEOUT_SECONDS = 30
READ_CHUNK = 4096


class _NativeSession:
    """
    Owns one socket + transport; close() is safe from any thread

    connect() runs on a worker thread that outlives an expired deadline.
    Once close() has been called, every later step of connect() tears down
    what it created and stops before the password is sent.
    """

    def __init__(self, host: str, port: int, timeout: float):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.sock: Optional[socket.socket] = None
        self.transport: Optional[paramiko.Transport] = None
        self.closed = False
        self._lock = threading.Lock()

    def _attach(self, attr: str, resource) -> None:
        """Publish a new socket/transport, or release it if the session was abandoned"""
        with self._lock:
            if not self.closed:
                setattr(self, attr, resource)
                return
        resource.close()
        raise ConnectionAbortedError(f"Session to {self.host} abandoned after deadline")

    def _check_open(self) -> None:
        if self.closed:
            raise ConnectionAbortedError(f"Session to {self.host} abandoned after deadline")

    def connect(self, username: str, password: str) -> None:
        self._attach('sock', socket.create_connection((self.host, self.port), timeout=self.timeout))
        self._attach('transport', paramiko.Transport(self.sock))

        options = self.transport.get_security_options()
        options.kex = KEX_ALGORITHMS
        options.key = HOST_KEY_ALGORITHMS

        # Host key is never checked: targets are freshly reset devices on the local subnet
        self.transport.start_client(timeout=self.timeout)
        self._check_open()

        try:
            self.transport.auth_password(username, password)
        except paramiko.BadAuthenticationType as e:
            if 'keyboard-interactive' not in (e.allowed_types or []):
                raise
            self.transport.auth_interactive(username, lambda title, instructions, prompts: [password] * len(prompts))

        if not self.transport.is_authenticated():
            raise paramiko.AuthenticationException("Password rejected")

    def run(self, command: str, timeout: float) -> Tuple[str, int]:
        channel = self.transport.open_session(timeout=timeout)
        try:
            channel.set_combine_stderr(True)
            channel.settimeout(timeout)
            channel.exec_command(command)

            chunks = []
            while True:
                data = channel.recv(READ_CHUNK)
                if not data:
                    break
                chunks.append(data)

            exit_status = channel.recv_exit_status()
            return b''.join(chunks).decode('utf-8', errors='replace'), exit_status
        finally:
            channel.close()

    def close(self) -> None:
        with self._lock:
            self.closed = True
            transport, sock = self.transport, self.sock
        if transport is not None:
            transport.close()
        if sock is not None:
            sock.close()


class NativeSessionStrategy:
    """Runs set-inform through paramiko with an explicit algorithm preference list"""

    name = "native"

    def __init__(self,
                 username: str = DEFAULT_USERNAME,
                 default_password: str = DEFAULT_PASSWORD,
                 port: int = SSH_PORT,
                 connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
                 command_timeout: float = COMMAND_TIMEOUT_SECONDS):
        self.username = username
        self.default_password = default_password
        self.port = port
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout

    async def open_and_run(self, target: SessionTarget) -> SessionOutcome:
        host = target.host
        session = _NativeSession(host, self.port, self.connect_timeout)
        logger.info(f"[SSH] Connecting to {host} via paramiko...")

        try:
            await asyncio.wait_for(
                asyncio.to_thread(session.connect, self.username,
                                  target.effective_password(self.default_password)),
                self.connect_timeout,
            )
        except asyncio.TimeoutError:
            session.close()
            return SessionOutcome.failed(FailureKind.CONNECTION_TIMEOUT, f"Timed out connecting to {host}")
        except Exception as e:
            session.close()
            return self._classify_connect_error(host, e)

        logger.info(f"[SSH] Authenticated to {host}, executing set-inform...")

        try:
            output, exit_status = await asyncio.to_thread(session.run, target.command, self.command_timeout)
        except socket.timeout:
            return SessionOutcome.failed(FailureKind.OTHER, f"Timed out waiting for set-inform output from {host}")
        except paramiko.ChannelException as e:
            return SessionOutcome.failed(FailureKind.OTHER, f"Failed to open channel: {e}")
        except paramiko.SSHException as e:
            return SessionOutcome.failed(FailureKind.COMMAND_FAILED, f"Failed to execute command: {e}")
        except OSError as e:
            return SessionOutcome.failed(FailureKind.OTHER, f"Session to {host} failed: {e}")
        finally:
            session.close()

        logger.info(f"[SSH] set-inform exit status: {exit_status}")
        logger.info(f"[SSH] set-inform output: {output.strip()}")
        return classify_command_output(output)

    def _classify_connect_error(self, host: str, error: Exception) -> SessionOutcome:
        if isinstance(error, paramiko.AuthenticationException):
            return SessionOutcome.failed(FailureKind.AUTHENTICATION_FAILED, auth_failed_message(host))
        if isinstance(error, ConnectionRefusedError) or 'refused' in str(error).lower():
            return SessionOutcome.failed(FailureKind.CONNECTION_REFUSED, f"Connection refused at {host}")
        if isinstance(error, (socket.timeout, TimeoutError)):
            return SessionOutcome.failed(FailureKind.CONNECTION_TIMEOUT, f"Timed out connecting to {host}")

        logger.warning(f"[SSH] Connection to {host} failed: {error!r}")
        return SessionOutcome.failed(FailureKind.OTHER, f"Failed to connect to {host}: {error}")
