"""
Tests for the adoption orchestrator

Strategies are replaced with fakes that record the targets they receive.
"""

import pytest

from adoption.models import SessionTarget, SessionOutcome, FailureKind
from adoption.orchestrator import (
    AdoptionOrchestrator, build_strategy_chain, detect_tools, format_user_error, adopt_device,
)
from adoption.native_session import NativeSessionStrategy
from adoption.process_session import SshpassSessionStrategy, ExpectSessionStrategy


class FakeStrategy:
    def __init__(self, name, outcome):
        self.name = name
        self.outcome = outcome
        self.targets = []

    async def open_and_run(self, target):
        self.targets.append(target)
        return self.outcome


def which_with(*installed):
    return lambda tool: f"/usr/bin/{tool}" if tool in installed else None


TARGET = SessionTarget(host="10.0.0.5", inform_url="http://ctrl:8080/inform", password="s3cret")


# ===== Orchestration Tests =====

class TestAdoptionOrchestrator:
    """Tests for the fallback policy"""

    async def test_first_success_returned(self):
        first = FakeStrategy("sshpass", SessionOutcome.succeeded("Adoption request sent"))
        second = FakeStrategy("native", SessionOutcome.succeeded("unused"))

        outcome = await AdoptionOrchestrator([first, second]).adopt(TARGET)

        assert outcome.success
        assert outcome.output == "Adoption request sent"
        assert second.targets == []

    async def test_auth_failure_short_circuits(self):
        """Strategy 2 never runs after an authentication failure"""
        first = FakeStrategy("sshpass", SessionOutcome.failed(FailureKind.AUTHENTICATION_FAILED, "bad password"))
        second = FakeStrategy("native", SessionOutcome.succeeded("unused"))

        outcome = await AdoptionOrchestrator([first, second]).adopt(TARGET)

        assert outcome.failure_kind == FailureKind.AUTHENTICATION_FAILED
        assert outcome.message == "bad password"
        assert second.targets == []

    async def test_command_failure_stops(self):
        first = FakeStrategy("sshpass", SessionOutcome.failed(FailureKind.COMMAND_FAILED, "set-inform returned an error"))
        second = FakeStrategy("native", SessionOutcome.succeeded("unused"))

        outcome = await AdoptionOrchestrator([first, second]).adopt(TARGET)

        assert outcome.failure_kind == FailureKind.COMMAND_FAILED
        assert second.targets == []

    @pytest.mark.parametrize("kind", [
        FailureKind.CONNECTION_TIMEOUT,
        FailureKind.CONNECTION_REFUSED,
        FailureKind.OTHER,
    ])
    async def test_retryable_failure_falls_through_with_same_target(self, kind):
        first = FakeStrategy("expect", SessionOutcome.failed(kind, "first"))
        second = FakeStrategy("native", SessionOutcome.succeeded("ok"))

        outcome = await AdoptionOrchestrator([first, second]).adopt(TARGET)

        assert outcome.success
        assert first.targets == [TARGET]
        assert second.targets == [TARGET]
        assert second.targets[0] is first.targets[0]

    async def test_exhausted_reports_native_message(self):
        first = FakeStrategy("sshpass", SessionOutcome.failed(FailureKind.OTHER, "sshpass failed"))
        second = FakeStrategy("native", SessionOutcome.failed(FailureKind.CONNECTION_TIMEOUT, "Timed out connecting to 10.0.0.5"))

        outcome = await AdoptionOrchestrator([first, second]).adopt(TARGET)

        assert not outcome.success
        assert outcome.failure_kind == FailureKind.OTHER
        assert outcome.message == "Timed out connecting to 10.0.0.5"
        assert not outcome.network_error
        assert format_user_error(outcome) == "SSH error: Timed out connecting to 10.0.0.5"

    async def test_exhausted_by_network_failures_is_network_error(self):
        first = FakeStrategy("sshpass", SessionOutcome.failed(FailureKind.CONNECTION_TIMEOUT, "Timed out connecting to 10.0.0.5"))
        second = FakeStrategy("native", SessionOutcome.failed(FailureKind.CONNECTION_REFUSED, "Connection refused at 10.0.0.5"))

        outcome = await AdoptionOrchestrator([first, second]).adopt(TARGET)

        assert outcome.failure_kind == FailureKind.OTHER
        assert outcome.network_error
        message = format_user_error(outcome)
        assert message.startswith("Network error: Connection refused at 10.0.0.5")
        assert "powered on" in message

    async def test_exhausted_without_native_reports_first_message(self):
        first = FakeStrategy("sshpass", SessionOutcome.failed(FailureKind.CONNECTION_REFUSED, "refused once"))
        second = FakeStrategy("expect", SessionOutcome.failed(FailureKind.CONNECTION_REFUSED, "refused twice"))

        outcome = await AdoptionOrchestrator([first, second]).adopt(TARGET)

        assert outcome.failure_kind == FailureKind.OTHER
        assert outcome.message == "refused once"

    async def test_strategies_run_sequentially(self):
        order = []

        class Recording(FakeStrategy):
            async def open_and_run(self, target):
                order.append(f"start-{self.name}")
                result = await super().open_and_run(target)
                order.append(f"end-{self.name}")
                return result

        chain = [Recording("a", SessionOutcome.failed(FailureKind.OTHER, "a")),
                 Recording("b", SessionOutcome.failed(FailureKind.OTHER, "b"))]
        await AdoptionOrchestrator(chain).adopt(TARGET)

        assert order == ["start-a", "end-a", "start-b", "end-b"]

    def test_empty_chain_rejected(self):
        with pytest.raises(ValueError):
            AdoptionOrchestrator([])


# ===== Strategy Chain Tests =====

class TestBuildStrategyChain:
    """Tests for tool-dependent strategy selection"""

    def test_sshpass_preferred(self):
        chain = build_strategy_chain({}, which=which_with("ssh", "sshpass", "expect"))
        assert [type(s) for s in chain] == [SshpassSessionStrategy, NativeSessionStrategy]

    def test_expect_when_no_sshpass(self):
        chain = build_strategy_chain({}, which=which_with("ssh", "expect"))
        assert [type(s) for s in chain] == [ExpectSessionStrategy, NativeSessionStrategy]

    def test_native_only_without_ssh(self):
        chain = build_strategy_chain({}, which=which_with("sshpass", "expect"))
        assert [type(s) for s in chain] == [NativeSessionStrategy]

    def test_native_only_without_helpers(self):
        chain = build_strategy_chain({}, which=which_with("ssh"))
        assert [type(s) for s in chain] == [NativeSessionStrategy]

    def test_config_passed_to_strategies(self):
        config = {'username': 'admin', 'default_password': 'pw', 'ssh_port': 2222,
                  'connect_timeout_seconds': 3, 'process_grace_seconds': 1}
        chain = build_strategy_chain(config, which=which_with("ssh", "sshpass"))

        for strategy in chain:
            assert strategy.username == 'admin'
            assert strategy.default_password == 'pw'
            assert strategy.port == 2222
            assert strategy.connect_timeout == 3
        assert chain[0].process_timeout == 4

    def test_factory_defaults_without_config(self):
        chain = build_strategy_chain(None, which=which_with())
        native = chain[0]
        assert (native.username, native.default_password, native.port) == ("ubnt", "ubnt", 22)

    def test_detection_is_per_call(self):
        installed = {"ssh"}
        which = lambda tool: tool if tool in installed else None

        assert detect_tools(which)['sshpass'] is False
        installed.add("sshpass")
        assert detect_tools(which)['sshpass'] is True


# ===== User Error Tests =====

class TestFormatUserError:
    """Tests for operator-facing messages"""

    def test_auth_hint(self):
        message = format_user_error(SessionOutcome.failed(FailureKind.AUTHENTICATION_FAILED, "Authentication failed for 10.0.0.5"))
        assert "current password" in message

    def test_network_error(self):
        message = format_user_error(SessionOutcome.failed(FailureKind.CONNECTION_TIMEOUT, "Timed out connecting to 10.0.0.5"))
        assert message.startswith("Network error")

    def test_other(self):
        message = format_user_error(SessionOutcome.failed(FailureKind.OTHER, "boom"))
        assert message == "SSH error: boom"


# ===== adopt_device Tests =====

class TestAdoptDevice:
    """Tests for the API entry point"""

    async def test_builds_target_and_chain(self, monkeypatch):
        fake = FakeStrategy("native", SessionOutcome.succeeded("sent"))
        seen = {}

        def fake_chain(config):
            seen['config'] = config
            return [fake]

        monkeypatch.setattr('adoption.orchestrator.build_strategy_chain', fake_chain)
        outcome = await adopt_device("10.0.0.5", "http://ctrl/inform", None, {'username': 'ubnt'})

        assert outcome.success
        assert seen['config'] == {'username': 'ubnt'}
        assert fake.targets == [SessionTarget("10.0.0.5", "http://ctrl/inform", None)]
