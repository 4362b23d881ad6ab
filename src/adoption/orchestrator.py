"""
Adoption orchestrator - tries session strategies in preference order

Preference order:
  1. system ssh via sshpass (or via expect when sshpass is missing)
  2. paramiko (native)

An authentication failure stops immediately: wrong credentials fail the same
way on every strategy and repeated logins can lock out the device. A command
failure also stops, since the device accepted the session and would reject
set-inform again.
"""

import shutil
import logging
from typing import Callable, Dict, List, Optional, Protocol

from .models import (
    SessionTarget, SessionOutcome, FailureKind,
    DEFAULT_USERNAME, DEFAULT_PASSWORD, SSH_PORT, CONNECT_TIMEOUT_SECONDS,
)
from .native_session import NativeSessionStrategy
from .process_session import SshpassSessionStrategy, ExpectSessionStrategy, PROCESS_GRACE_SECONDS

logger = logging.getLogger(__name__)

TERMINAL_FAILURES = (FailureKind.AUTHENTICATION_FAILED, FailureKind.COMMAND_FAILED)
NETWORK_FAILURES = (FailureKind.CONNECTION_REFUSED, FailureKind.CONNECTION_TIMEOUT)


class SessionStrategy(Protocol):
    name: str

    async def open_and_run(self, target: SessionTarget) -> SessionOutcome:
        ...


def detect_tools(which: Callable[[str], Optional[str]] = shutil.which) -> Dict[str, bool]:
    """Check installed client binaries; never cached since they can change at runtime"""
    return {tool: which(tool) is not None for tool in ("ssh", "sshpass", "expect")}


def build_strategy_chain(config: Optional[Dict] = None,
                         which: Callable[[str], Optional[str]] = shutil.which) -> List[SessionStrategy]:
    """Build the ordered strategy list for one adoption call"""
    config = config or {}
    common = {
        'username': config.get('username', DEFAULT_USERNAME),
        'default_password': config.get('default_password', DEFAULT_PASSWORD),
        'port': config.get('ssh_port', SSH_PORT),
        'connect_timeout': config.get('connect_timeout_seconds', CONNECT_TIMEOUT_SECONDS),
    }
    grace = config.get('process_grace_seconds', PROCESS_GRACE_SECONDS)
    tools = detect_tools(which)

    chain: List[SessionStrategy] = []
    if tools['ssh']:
        if tools['sshpass']:
            chain.append(SshpassSessionStrategy(grace_seconds=grace, **common))
        elif tools['expect']:
            chain.append(ExpectSessionStrategy(grace_seconds=grace, **common))
        else:
            logger.info("[ADOPT] Neither sshpass nor expect installed - skipping system ssh")
    else:
        logger.info("[ADOPT] System ssh not found - using paramiko only")

    chain.append(NativeSessionStrategy(**common))
    return chain


class AdoptionOrchestrator:
    """Runs strategies one at a time against a single target"""

    def __init__(self, strategies: List[SessionStrategy]):
        if not strategies:
            raise ValueError("At least one session strategy is required")
        self.strategies = strategies

    async def adopt(self, target: SessionTarget) -> SessionOutcome:
        failures: List[tuple] = []

        for index, strategy in enumerate(self.strategies):
            logger.info(f"[ADOPT] {target.host}: trying strategy {index + 1}/{len(self.strategies)} ({strategy.name})")
            outcome = await strategy.open_and_run(target)

            if outcome.success:
                logger.info(f"[ADOPT] {target.host}: set-inform succeeded via {strategy.name}")
                return outcome

            logger.warning(f"[ADOPT] {target.host}: {strategy.name} failed - {outcome}")
            if outcome.failure_kind in TERMINAL_FAILURES:
                return outcome

            failures.append((strategy.name, outcome))

        return self._exhausted(target, failures)

    def _exhausted(self, target: SessionTarget, failures: List[tuple]) -> SessionOutcome:
        # The paramiko message tends to be the most specific one
        native = [o for name, o in failures if name == NativeSessionStrategy.name]
        chosen = native[0] if native else failures[0][1]
        network_only = all(o.failure_kind in NETWORK_FAILURES for _, o in failures)
        logger.error(f"[ADOPT] {target.host}: all {len(failures)} strategies failed")
        return SessionOutcome.failed(FailureKind.OTHER, chosen.message, network_error=network_only)


def format_user_error(outcome: SessionOutcome) -> str:
    """Single message shown to the operator for a failed adoption"""
    kind = outcome.failure_kind
    if kind == FailureKind.AUTHENTICATION_FAILED:
        return (f"{outcome.message}. If the device was configured before, "
                f"enter its current password and try again.")
    if kind in NETWORK_FAILURES or outcome.network_error:
        return f"Network error: {outcome.message}. Check the device is powered on and on this network."
    return str(outcome)


async def adopt_device(host: str, inform_url: str, password: Optional[str] = None,
                       config: Optional[Dict] = None) -> SessionOutcome:
    """Entry point used by the API: fresh tool detection and strategy chain per call"""
    target = SessionTarget(host=host, inform_url=inform_url, password=password)
    orchestrator = AdoptionOrchestrator(build_strategy_chain(config))
    return await orchestrator.adopt(target)
