"""Unit tests for retry handler with exponential backoff."""

import pytest

from leadwatch.core.exceptions import LinkUpAPIError
from leadwatch.services.retry_handler import RetryWithBackoff


@pytest.fixture
def retry_handler():
    """Create a fast RetryWithBackoff for tests."""
    return RetryWithBackoff(
        max_retries=2,
        base_delay=0.001,
        max_delay=0.01,
        exponential_base=2.0,
        jitter=0.0,
    )


class TestRetryWithBackoff:
    """Test suite for RetryWithBackoff."""

    @pytest.mark.asyncio
    async def test_successful_first_attempt(self, retry_handler):
        """Test successful call on first attempt."""
        async def successful_call():
            return "success"

        result = await retry_handler.execute(successful_call)

        assert result == "success"

    @pytest.mark.asyncio
    async def test_retry_on_failure(self, retry_handler):
        """Test retries on transient failures."""
        call_count = 0

        async def flaky_call():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise RuntimeError("Transient error")
            return "success"

        result = await retry_handler.execute(flaky_call)

        assert result == "success"
        assert call_count == 3  # Failed twice, succeeded third time

    @pytest.mark.asyncio
    async def test_exhausts_retries(self, retry_handler):
        """Test raises error after exhausting retries."""
        async def always_fails():
            raise RuntimeError("Permanent failure")

        call_count = 0

        async def counted():
            nonlocal call_count
            call_count += 1
            await always_fails()

        with pytest.raises(RuntimeError, match="Permanent failure"):
            await retry_handler.execute(counted)

        assert call_count == 3

    @pytest.mark.asyncio
    async def test_predicate_stops_non_retryable_errors(self):
        """A 400 from LinkUp is raised immediately, without retrying."""
        handler = RetryWithBackoff(
            max_retries=4,
            base_delay=0.001,
            max_delay=0.01,
            jitter=0.0,
            retry_if=lambda e: isinstance(e, LinkUpAPIError) and e.is_retryable,
        )
        call_count = 0

        async def bad_request():
            nonlocal call_count
            call_count += 1
            raise LinkUpAPIError(status=400, status_text="Bad Request")

        with pytest.raises(LinkUpAPIError):
            await handler.execute(bad_request)

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_exception_type_filter(self):
        handler = RetryWithBackoff(
            max_retries=3,
            base_delay=0.001,
            max_delay=0.01,
            jitter=0.0,
            retry_on_exceptions=(ConnectionError,),
        )

        async def wrong_type():
            raise ValueError("not retried")

        with pytest.raises(ValueError):
            await handler.execute(wrong_type)

    @pytest.mark.asyncio
    async def test_passes_arguments(self, retry_handler):
        async def add(a, b, scale=1):
            return (a + b) * scale

        assert await retry_handler.execute(add, 1, 2, scale=10) == 30


class TestDelayCalculation:
    """Backoff delay growth and caps."""

    def test_exponential_growth(self):
        handler = RetryWithBackoff(max_retries=5, base_delay=2.0, max_delay=60.0, jitter=0.0)

        assert handler._calculate_delay(0) == 2.0
        assert handler._calculate_delay(1) == 4.0
        assert handler._calculate_delay(2) == 8.0

    def test_max_delay_cap(self):
        handler = RetryWithBackoff(max_retries=10, base_delay=2.0, max_delay=10.0, jitter=0.0)

        assert handler._calculate_delay(8) == 10.0

    def test_jitter_bounds(self):
        handler = RetryWithBackoff(max_retries=3, base_delay=2.0, max_delay=60.0, jitter=1.0)

        for _ in range(20):
            delay = handler._calculate_delay(1)
            assert 4.0 <= delay <= 5.0

    @pytest.mark.parametrize("kwargs", [
        {"max_retries": -1},
        {"base_delay": 0},
        {"base_delay": 5.0, "max_delay": 1.0},
        {"exponential_base": 1.0},
        {"jitter": -0.5},
    ])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            RetryWithBackoff(**kwargs)

    def test_get_config(self):
        handler = RetryWithBackoff(retry_on_exceptions=(TimeoutError,))
        config = handler.get_config()

        assert config["max_retries"] == 5
        assert config["base_delay"] == 1.0
        assert config["jitter"] == 1.0
        assert config["retry_on_exceptions"] == ["TimeoutError"]
