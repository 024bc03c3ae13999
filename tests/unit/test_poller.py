"""Tests for veoworks.core.poller — operation polling.

Tests cover:
- Sequential status checks at the configured interval until ``done``.
- Fatal status-check failures (no retry).
- The timeout budget.
- Cancellation through asyncio task cancellation.
"""

from __future__ import annotations

import asyncio

import pytest

from veoworks.core.errors import PollTimeoutError, StatusCheckError
from veoworks.core.poller import (
    STATUS_CHECK_FAILED_MESSAGE,
    max_status_checks,
    poll_operation,
)


class TestMaxStatusChecks:
    """Test max_status_checks()."""

    def test_unbounded(self):
        assert max_status_checks(10.0, None) is None

    def test_rounds_up(self):
        assert max_status_checks(10.0, 25.0) == 3

    def test_at_least_one(self):
        assert max_status_checks(10.0, 0.5) == 1


@pytest.mark.unit
class TestPollOperation:
    """Test poll_operation()."""

    @pytest.mark.asyncio
    async def test_already_done_makes_no_calls(self, make_service, operation_factory, recording_sleep):
        """A completed initial operation is returned without any status check."""
        initial = operation_factory(done=True, uri="https://x/video")
        service = make_service(initial, [])

        result = await poll_operation(service, initial, sleep=recording_sleep)

        assert result is initial
        assert service.status_calls == []
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_n_pending_then_done(self, make_service, operation_factory, recording_sleep):
        """N not-done responses followed by done give exactly N + 1 checks."""
        pending = [operation_factory(done=False) for _ in range(3)]
        final = operation_factory(done=True, uri="https://x/video")
        service = make_service(operation_factory(done=False), pending + [final])

        result = await poll_operation(service, service.initial, interval=10.0, sleep=recording_sleep)

        assert result is final
        assert len(service.status_calls) == 4
        assert recording_sleep.calls == [10.0] * 4

    @pytest.mark.asyncio
    async def test_checks_use_latest_handle(self, make_service, operation_factory, recording_sleep):
        """Each check refreshes the handle returned by the previous one."""
        first = operation_factory(done=False, name="operations/1")
        second = operation_factory(done=False, name="operations/2")
        final = operation_factory(done=True, uri="https://x/video")
        service = make_service(first, [second, final])

        await poll_operation(service, first, sleep=recording_sleep)

        assert service.status_calls == [first, second]

    @pytest.mark.asyncio
    async def test_status_check_failure_aborts(self, make_service, operation_factory, recording_sleep):
        """A failed check raises StatusCheckError and is not retried."""
        boom = RuntimeError("connection reset")
        service = make_service(
            operation_factory(done=False),
            [boom, operation_factory(done=True, uri="https://x/video")],
        )

        with pytest.raises(StatusCheckError) as exc_info:
            await poll_operation(service, service.initial, sleep=recording_sleep)

        assert exc_info.value.message == STATUS_CHECK_FAILED_MESSAGE
        assert exc_info.value.__cause__ is boom
        assert len(service.status_calls) == 1

    @pytest.mark.asyncio
    async def test_timeout(self, make_service, operation_factory, recording_sleep):
        """Polling stops once the check budget is used up."""
        service = make_service(
            operation_factory(done=False),
            [operation_factory(done=False) for _ in range(10)],
        )

        with pytest.raises(PollTimeoutError, match="within 30 seconds"):
            await poll_operation(
                service, service.initial, interval=10.0, timeout=30.0, sleep=recording_sleep
            )

        assert len(service.status_calls) == 3
        assert recording_sleep.calls == [10.0, 10.0, 10.0]

    @pytest.mark.asyncio
    async def test_cancellation_stops_polling(self, make_service, operation_factory):
        """Cancelling the task raises CancelledError and stops further checks."""
        service = make_service(
            operation_factory(done=False),
            [operation_factory(done=False) for _ in range(100)],
        )
        task = asyncio.create_task(poll_operation(service, service.initial, interval=0.01))

        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        calls_at_cancel = len(service.status_calls)
        await asyncio.sleep(0.05)
        assert len(service.status_calls) == calls_at_cancel
