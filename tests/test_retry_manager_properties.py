"""
Property-based tests for the Retry Manager module.

Uses Hypothesis for property-based testing of the bounded retry loop.
"""

import asyncio

from hypothesis import given, settings
from hypothesis import strategies as st

from domain_watch.config import RetryConfig
from domain_watch.enums import RegistrationOutcome
from domain_watch.rdap_client import RDAPResponse
from domain_watch.retry_manager import RetryManager, RetryResult


# Strategies for generating test data

@st.composite
def retry_config_strategy(draw) -> RetryConfig:
    """Generate RetryConfig objects with negligible delays."""
    return RetryConfig(
        max_retries=draw(st.integers(min_value=0, max_value=4)),
        base_delay_seconds=draw(st.floats(min_value=0.0, max_value=0.002)),
        max_delay_seconds=draw(st.floats(min_value=0.002, max_value=0.005)),
    )


@st.composite
def outcome_sequence_strategy(draw) -> list[RegistrationOutcome]:
    """Generate the outcomes a registry answers with, one per attempt."""
    return draw(st.lists(st.sampled_from(list(RegistrationOutcome)), min_size=1, max_size=6))


def run_with_outcomes(config: RetryConfig, outcomes: list[RegistrationOutcome]) -> RetryResult:
    calls = []

    async def operation() -> RDAPResponse:
        outcome = outcomes[min(len(calls), len(outcomes) - 1)]
        calls.append(outcome)
        return RDAPResponse(outcome=outcome, http_status_code=429 if outcome == RegistrationOutcome.RATE_LIMITED else 200)

    manager = RetryManager(config)
    return asyncio.run(manager.execute(
        operation,
        lambda response: response.outcome == RegistrationOutcome.RATE_LIMITED,
    ))


class TestRetryBound:
    """
    The number of attempts never exceeds max_retries + 1.

    *For any* retry configuration and any sequence of outcomes, the
    operation runs at most max_retries + 1 times and stops at the first
    outcome that does not ask for a retry.
    """

    @given(config=retry_config_strategy(), outcomes=outcome_sequence_strategy())
    @settings(max_examples=100)
    def test_attempts_are_bounded(self, config: RetryConfig, outcomes) -> None:
        result = run_with_outcomes(config, outcomes)

        assert 1 <= result.attempts <= config.max_retries + 1

    @given(config=retry_config_strategy(), outcomes=outcome_sequence_strategy())
    @settings(max_examples=100)
    def test_stops_at_first_final_outcome(self, config: RetryConfig, outcomes) -> None:
        result = run_with_outcomes(config, outcomes)

        padded = outcomes + [outcomes[-1]] * (config.max_retries + 1)
        expected_attempts = config.max_retries + 1
        for index, outcome in enumerate(padded[: config.max_retries + 1]):
            if outcome != RegistrationOutcome.RATE_LIMITED:
                expected_attempts = index + 1
                break

        assert result.attempts == expected_attempts
        assert result.result.outcome == padded[expected_attempts - 1]

    def test_default_config_allows_one_retry(self) -> None:
        config = RetryConfig(base_delay_seconds=0.0, max_delay_seconds=0.0)
        result = run_with_outcomes(config, [RegistrationOutcome.RATE_LIMITED])

        assert RetryConfig().max_retries == 1
        assert result.attempts == 2
        assert result.result.outcome == RegistrationOutcome.RATE_LIMITED


class TestRetryDelay:
    """
    Delays grow exponentially and are capped.

    *For any* attempt n, delay(n) = min(base_delay * 2^n, max_delay).
    """

    @given(
        base=st.floats(min_value=0.0, max_value=10.0),
        cap=st.floats(min_value=0.0, max_value=60.0),
        attempt=st.integers(min_value=0, max_value=10),
    )
    @settings(max_examples=100)
    def test_delay_formula(self, base: float, cap: float, attempt: int) -> None:
        manager = RetryManager(RetryConfig(base_delay_seconds=base, max_delay_seconds=cap))

        assert manager._calculate_delay(attempt) == min(base * (2 ** attempt), cap)

    def test_default_delay_is_within_rate_limit_window(self) -> None:
        manager = RetryManager(RetryConfig())

        assert 1.0 <= manager._calculate_delay(0) <= 2.0

    def test_total_delay_is_reported(self) -> None:
        config = RetryConfig(max_retries=2, base_delay_seconds=0.001, max_delay_seconds=0.004)
        result = run_with_outcomes(config, [RegistrationOutcome.RATE_LIMITED])

        assert result.attempts == 3
        assert abs(result.total_delay_seconds - 0.003) < 1e-9

    def test_no_delay_without_retry(self) -> None:
        config = RetryConfig(base_delay_seconds=1.0, max_delay_seconds=2.0)
        result = run_with_outcomes(config, [RegistrationOutcome.REGISTERED])

        assert result.attempts == 1
        assert result.total_delay_seconds == 0.0
