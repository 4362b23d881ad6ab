"""
Text heuristics applied to set-inform output and ssh client output

set-inform does not reliably return a non-zero exit code on failure, so the
text it prints is the primary success signal. A typical success line:

    Adoption request sent to 'http://ctrl:8080/inform'. Use UI to complete...
"""

import re
from typing import Optional

from .models import SessionOutcome, FailureKind, auth_failed_message

SUCCESS_MARKER = "inform"
ERROR_MARKER = "error"

# Lines produced by ssh or the expect wrapper rather than by the device
_ARTIFACT_PATTERNS = [
    re.compile(r"^spawn\s"),
    re.compile(r"password:\s*$", re.IGNORECASE),
    re.compile(r"^Warning: Permanently added"),
]


def classify_command_output(output: str) -> SessionOutcome:
    """
    Decide whether set-inform output means success.

    Output containing "error" but not "inform" is a command failure. The
    check is deliberately loose to stay compatible with firmware that prints
    both words on success.
    """
    text = output.strip()
    lowered = text.lower()
    if ERROR_MARKER in lowered and SUCCESS_MARKER not in lowered:
        return SessionOutcome.failed(FailureKind.COMMAND_FAILED,
                                     f"set-inform returned an error: {text}")
    return SessionOutcome.succeeded(text)


def strip_session_artifacts(output: str) -> str:
    """Drop spawn banner, password prompt, known-hosts warnings and blank lines"""
    kept = []
    for line in output.replace('\r', '').split('\n'):
        if not line.strip():
            continue
        if any(p.search(line) for p in _ARTIFACT_PATTERNS):
            continue
        kept.append(line)
    return '\n'.join(kept)


def classify_client_failure(host: str, combined_output: str) -> Optional[SessionOutcome]:
    """Map ssh client error text to a failure, or None if nothing matched"""
    if "Permission denied" in combined_output or "Authentication failed" in combined_output:
        return SessionOutcome.failed(FailureKind.AUTHENTICATION_FAILED, auth_failed_message(host))
    if "Connection refused" in combined_output:
        return SessionOutcome.failed(FailureKind.CONNECTION_REFUSED, f"Connection refused at {host}")
    if "timed out" in combined_output or "Connection timeout" in combined_output:
        return SessionOutcome.failed(FailureKind.CONNECTION_TIMEOUT, f"Timed out connecting to {host}")
    return None
