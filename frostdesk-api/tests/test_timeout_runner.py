import asyncio
import time

from app.services.timeout_runner import AI_TIMEOUT, with_timeout, with_timeout_sync


async def _sleep_then(value, seconds):
    await asyncio.sleep(seconds)
    return value


async def _fail_after(seconds):
    await asyncio.sleep(seconds)
    raise RuntimeError("provider exploded")


class TestWithTimeout:
    def test_returns_result_within_deadline(self):
        result = asyncio.run(with_timeout(_sleep_then("ok", 0.01), 1_000))

        assert result.ok
        assert result.result == "ok"
        assert result.timed_out is False
        assert result.error is None
        assert result.elapsed_ms >= 0

    def test_reports_timeout(self):
        result = asyncio.run(with_timeout(_sleep_then("late", 1.0), 20))

        assert result.timed_out is True
        assert result.result is None
        assert not result.ok
        assert result.elapsed_ms < 1_000

    def test_task_just_past_deadline_times_out_at_deadline(self):
        deadline_ms = 100

        result = asyncio.run(with_timeout(_sleep_then("late", (deadline_ms + 50) / 1000), deadline_ms))

        assert result.timed_out is True
        assert result.result is None
        assert deadline_ms - 10 <= result.elapsed_ms < deadline_ms + 40

    def test_late_task_is_not_cancelled(self):
        async def scenario():
            finished = asyncio.Event()

            async def slow():
                await asyncio.sleep(0.1)
                finished.set()
                return "done"

            result = await with_timeout(slow(), 10)
            await asyncio.wait_for(finished.wait(), timeout=1)
            return result, finished.is_set()

        result, finished = asyncio.run(scenario())
        assert result.timed_out is True
        assert finished is True

    def test_task_error_is_returned_not_raised(self):
        result = asyncio.run(with_timeout(_fail_after(0), 1_000))

        assert result.timed_out is False
        assert isinstance(result.error, RuntimeError)
        assert not result.ok

    def test_zero_deadline_times_out(self):
        result = asyncio.run(with_timeout(_sleep_then("x", 0.05), 0))
        assert result.timed_out is True


class TestWithTimeoutSync:
    def test_runs_blocking_callable(self):
        result = asyncio.run(with_timeout_sync(lambda a, b: a + b, 1_000, 2, 3))
        assert result.result == 5

    def test_callable_error(self):
        def boom():
            raise ValueError("bad json")

        result = asyncio.run(with_timeout_sync(boom, 1_000))
        assert isinstance(result.error, ValueError)

    def test_blocking_callable_past_deadline_times_out(self):
        deadline_ms = 100

        def slow_provider():
            time.sleep((deadline_ms + 50) / 1000)
            return "late"

        result = asyncio.run(with_timeout_sync(slow_provider, deadline_ms))

        assert result.timed_out is True
        assert result.result is None
        assert deadline_ms - 10 <= result.elapsed_ms < deadline_ms + 40


class TestDeadlines:
    def test_budgets(self):
        assert AI_TIMEOUT.INTENT == 2_500
        assert AI_TIMEOUT.DRAFT == 6_000
