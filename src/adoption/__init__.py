"""
Adoption module - pushes set-inform to access points over SSH
"""

from .models import SessionTarget, SessionOutcome, FailureKind
from .native_session import NativeSessionStrategy
from .process_session import SshpassSessionStrategy, ExpectSessionStrategy
from .orchestrator import AdoptionOrchestrator, build_strategy_chain, adopt_device, format_user_error

__all__ = ['SessionTarget', 'SessionOutcome', 'FailureKind', 'NativeSessionStrategy',
           'SshpassSessionStrategy', 'ExpectSessionStrategy', 'AdoptionOrchestrator',
           'build_strategy_chain', 'adopt_device', 'format_user_error']
