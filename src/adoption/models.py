"""
Adoption data structures shared by every session strategy
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional


DEFAULT_USERNAME = "ubnt"
DEFAULT_PASSWORD = "ubnt"
SSH_PORT = 22
CONNECT_TIMEOUT_SECONDS = 10


class FailureKind(Enum):
    """Why a session attempt failed"""
    CONNECTION_REFUSED = "connection_refused"
    CONNECTION_TIMEOUT = "connection_timeout"
    AUTHENTICATION_FAILED = "authentication_failed"
    COMMAND_FAILED = "command_failed"
    OTHER = "other"


@dataclass(frozen=True)
class SessionTarget:
    """One access point to adopt; immutable for the whole attempt"""
    host: str
    inform_url: str
    password: Optional[str] = None

    def effective_password(self, default: str = DEFAULT_PASSWORD) -> str:
        return self.password if self.password else default

    @property
    def command(self) -> str:
        return f"set-inform {self.inform_url}"


@dataclass(frozen=True)
class SessionOutcome:
    """Result of one strategy attempt (or of the whole adoption)"""
    success: bool
    output: str = ""
    failure_kind: Optional[FailureKind] = None
    message: str = ""
    # Set on an exhausted adoption where every strategy was refused or timed out
    network_error: bool = False

    @classmethod
    def succeeded(cls, output: str) -> "SessionOutcome":
        return cls(success=True, output=output)

    @classmethod
    def failed(cls, kind: FailureKind, message: str, network_error: bool = False) -> "SessionOutcome":
        return cls(success=False, failure_kind=kind, message=message, network_error=network_error)

    def __str__(self) -> str:
        if self.success:
            return self.output
        prefixes = {
            FailureKind.CONNECTION_REFUSED: "Connection refused",
            FailureKind.CONNECTION_TIMEOUT: "Connection timeout",
            FailureKind.AUTHENTICATION_FAILED: "Authentication failed",
            FailureKind.COMMAND_FAILED: "Command failed",
            FailureKind.OTHER: "SSH error",
        }
        return f"{prefixes[self.failure_kind]}: {self.message}"


def auth_failed_message(host: str) -> str:
    return (f"Authentication failed for {host} - password may have been changed "
            f"from factory default")
