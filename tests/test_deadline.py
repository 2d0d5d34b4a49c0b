import asyncio

import pytest
from ops_assistant.core.deadline import CancelToken, DeadlineExceeded, OperationCancelled, with_deadline


class TestWithDeadline:
    """Unit tests for the deadline/cancellation primitive"""

    @pytest.mark.asyncio
    async def test_returns_result_before_deadline(self):
        """Test a fast awaitable returns its result"""
        async def work():
            await asyncio.sleep(0)
            return 42

        assert await with_deadline(work(), 1.0) == 42

    @pytest.mark.asyncio
    async def test_deadline_cancels_awaitable(self):
        """Test an expired deadline raises and cancels the inner call"""
        state = {"cancelled": False}

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                state["cancelled"] = True
                raise

        with pytest.raises(DeadlineExceeded) as exc_info:
            await with_deadline(slow(), 0.01)

        assert exc_info.value.seconds == 0.01
        assert state["cancelled"] is True

    @pytest.mark.asyncio
    async def test_no_deadline(self):
        """Test None disables the deadline"""
        async def work():
            await asyncio.sleep(0.01)
            return "done"

        assert await with_deadline(work(), None) == "done"

    @pytest.mark.asyncio
    async def test_exception_propagates(self):
        """Test errors from the awaitable are re-raised unchanged"""
        async def broken():
            raise ValueError("bad payload")

        with pytest.raises(ValueError, match="bad payload"):
            await with_deadline(broken(), 1.0)

    @pytest.mark.asyncio
    async def test_cancel_token(self):
        """Test a fired token aborts the wait"""
        token = CancelToken()

        async def slow():
            await asyncio.sleep(10)

        async def cancel_soon():
            await asyncio.sleep(0.01)
            token.cancel("user left")

        canceller = asyncio.ensure_future(cancel_soon())
        with pytest.raises(OperationCancelled, match="user left"):
            await with_deadline(slow(), 5.0, cancel_token=token)
        await canceller

        assert token.cancelled
        assert token.reason == "user left"

    @pytest.mark.asyncio
    async def test_already_cancelled_token(self):
        """Test a token cancelled up front never runs the call to completion"""
        token = CancelToken()
        token.cancel()
        state = {"finished": False}

        async def work():
            await asyncio.sleep(0)
            state["finished"] = True

        with pytest.raises(OperationCancelled):
            await with_deadline(work(), 1.0, cancel_token=token)
        assert state["finished"] is False

    @pytest.mark.asyncio
    async def test_token_unused_when_call_finishes(self):
        """Test a token that never fires does not affect the result"""
        token = CancelToken()

        async def work():
            return "ok"

        assert await with_deadline(work(), 1.0, cancel_token=token) == "ok"
        assert not token.cancelled

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self):
        """Test the first cancel reason is kept"""
        token = CancelToken()
        token.cancel("first")
        token.cancel("second")
        assert token.reason == "first"
