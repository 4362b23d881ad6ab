"""
SSH sessions through the system OpenSSH client

Two ways of answering the password prompt:
  - sshpass, when installed
  - a throwaway expect script, when sshpass is missing
"""

import asyncio
import os
import logging
import tempfile
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from .models import (
    SessionTarget, SessionOutcome, FailureKind, auth_failed_message,
    DEFAULT_USERNAME, DEFAULT_PASSWORD, SSH_PORT, CONNECT_TIMEOUT_SECONDS,
)
from .output_parser import classify_command_output, classify_client_failure, strip_session_artifacts

logger = logging.getLogger(__name__)

PROCESS_GRACE_SECONDS = 5
PASSWORD_ENV = "AP_ADOPT_SSH_PASSWORD"

# Exit codes emitted by the expect script
EXPECT_EXIT_REFUSED = 3
EXPECT_EXIT_TIMEOUT = 4
EXPECT_EXIT_AUTH = 5

# sshpass exits 5 when the password was rejected, often with nothing on stderr
SSHPASS_EXIT_BAD_PASSWORD = 5

EXPECT_SCRIPT_TEMPLATE = """\
set timeout {timeout}
set password $env({password_env})
set prompts 0
log_user 1
spawn ssh {{*}}$argv
expect {{
    -re "(?i)password:" {{
        incr prompts
        if {{$prompts > 1}} {{
            exit {exit_auth}
        }}
        send -- "$password\\r"
        exp_continue
    }}
    "Connection refused" {{
        exit {exit_refused}
    }}
    "timed out" {{
        exit {exit_timeout}
    }}
    timeout {{
        exit {exit_timeout}
    }}
    eof
}}
catch wait result
exit [lindex $result 3]
"""


@contextmanager
def disposable_script(content: str, prefix: str = "ap-adopt-", suffix: str = ".exp") -> Iterator[str]:
    """Write an owner-only executable script and delete it on every exit path"""
    fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix)
    try:
        with os.fdopen(fd, 'w') as f:
            f.write(content)
        os.chmod(path, 0o700)
        yield path
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


class _ProcessSessionStrategy:
    """Shared plumbing for strategies that shell out to ssh"""

    name = "process"
    tool = "ssh"

    def __init__(self,
                 username: str = DEFAULT_USERNAME,
                 default_password: str = DEFAULT_PASSWORD,
                 port: int = SSH_PORT,
                 connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
                 grace_seconds: float = PROCESS_GRACE_SECONDS):
        self.username = username
        self.default_password = default_password
        self.port = port
        self.connect_timeout = connect_timeout
        self.grace_seconds = grace_seconds

    @property
    def process_timeout(self) -> float:
        return self.connect_timeout + self.grace_seconds

    def ssh_args(self, target: SessionTarget, extra_options: Optional[List[str]] = None) -> List[str]:
        options = [
            "StrictHostKeyChecking=no",
            "UserKnownHostsFile=/dev/null",
            f"ConnectTimeout={int(self.connect_timeout)}",
            "HostKeyAlgorithms=+ssh-rsa",
            "PubkeyAcceptedAlgorithms=+ssh-rsa",
            "PubkeyAuthentication=no",
        ] + (extra_options or [])

        args = []
        for option in options:
            args.extend(["-o", option])
        args.extend(["-p", str(self.port), f"{self.username}@{target.host}", target.command])
        return args

    async def run_process(self, argv: List[str], env: Optional[Dict[str, str]] = None) -> Tuple[int, str, str]:
        """Run a process with a hard deadline; raises asyncio.TimeoutError after killing it"""
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self.process_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise

        return (proc.returncode,
                stdout.decode('utf-8', errors='replace'),
                stderr.decode('utf-8', errors='replace'))

    def classify(self, target: SessionTarget, returncode: int, stdout: str, stderr: str) -> SessionOutcome:
        logger.info(f"[SSH] {self.name} stdout: {stdout.strip()}")
        logger.info(f"[SSH] {self.name} stderr: {stderr.strip()}")

        if returncode != 0:
            combined = f"{stdout}\n{stderr}".strip()
            outcome = classify_client_failure(target.host, combined)
            if outcome is not None:
                return outcome
            return SessionOutcome.failed(FailureKind.OTHER, f"Failed to connect to {target.host}: {combined}")

        return classify_command_output(stdout)

    def _timeout_outcome(self, target: SessionTarget) -> SessionOutcome:
        return SessionOutcome.failed(FailureKind.CONNECTION_TIMEOUT, f"Timed out connecting to {target.host}")


class SshpassSessionStrategy(_ProcessSessionStrategy):
    """ssh driven by sshpass; password passed through the SSHPASS environment variable"""

    name = "sshpass"
    tool = "sshpass"

    async def open_and_run(self, target: SessionTarget) -> SessionOutcome:
        logger.info(f"[SSH] Connecting to {target.host} via system ssh (sshpass)...")

        argv = ["sshpass", "-e", "ssh"] + self.ssh_args(target)
        env = dict(os.environ, SSHPASS=target.effective_password(self.default_password))

        try:
            returncode, stdout, stderr = await self.run_process(argv, env)
        except asyncio.TimeoutError:
            return self._timeout_outcome(target)
        except OSError as e:
            return SessionOutcome.failed(FailureKind.OTHER, f"Failed to run sshpass: {e}")

        if returncode == SSHPASS_EXIT_BAD_PASSWORD:
            return SessionOutcome.failed(FailureKind.AUTHENTICATION_FAILED, auth_failed_message(target.host))
        return self.classify(target, returncode, stdout, stderr)


class ExpectSessionStrategy(_ProcessSessionStrategy):
    """ssh driven by a disposable expect script that answers the password prompt"""

    name = "expect"
    tool = "expect"

    def build_script(self) -> str:
        return EXPECT_SCRIPT_TEMPLATE.format(
            timeout=int(self.process_timeout),
            password_env=PASSWORD_ENV,
            exit_auth=EXPECT_EXIT_AUTH,
            exit_refused=EXPECT_EXIT_REFUSED,
            exit_timeout=EXPECT_EXIT_TIMEOUT,
        )

    async def open_and_run(self, target: SessionTarget) -> SessionOutcome:
        logger.info(f"[SSH] Connecting to {target.host} via system ssh (expect)...")

        env = dict(os.environ)
        env[PASSWORD_ENV] = target.effective_password(self.default_password)

        try:
            with disposable_script(self.build_script()) as script_path:
                argv = ["expect", "-f", script_path, "--"] + self.ssh_args(target)
                returncode, stdout, stderr = await self.run_process(argv, env)
        except asyncio.TimeoutError:
            return self._timeout_outcome(target)
        except OSError as e:
            return SessionOutcome.failed(FailureKind.OTHER, f"Failed to run expect: {e}")

        if returncode == EXPECT_EXIT_AUTH:
            return SessionOutcome.failed(FailureKind.AUTHENTICATION_FAILED, auth_failed_message(target.host))
        if returncode == EXPECT_EXIT_REFUSED:
            return SessionOutcome.failed(FailureKind.CONNECTION_REFUSED, f"Connection refused at {target.host}")
        if returncode == EXPECT_EXIT_TIMEOUT:
            return self._timeout_outcome(target)

        return self.classify(target, returncode, strip_session_artifacts(stdout), stderr)
