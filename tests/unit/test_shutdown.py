"""Tests for graceful shutdown request tracking."""

import asyncio

import pytest

from src.shepherd.core.shutdown import RequestTracker

pytestmark = pytest.mark.unit


class TestRequestTracker:
    """Test the RequestTracker class."""

    async def test_request_tracking(self):
        tracker = RequestTracker()

        assert tracker.in_flight_count == 0
        assert not tracker.is_shutting_down

        async with tracker.track_request():
            assert tracker.in_flight_count == 1

        assert tracker.in_flight_count == 0

    async def test_multiple_concurrent_requests(self):
        tracker = RequestTracker()

        async def mock_request(delay: float):
            async with tracker.track_request():
                await asyncio.sleep(delay)

        tasks = [asyncio.create_task(mock_request(0.1)) for _ in range(3)]
        await asyncio.sleep(0.05)
        assert tracker.in_flight_count == 3

        await asyncio.gather(*tasks)
        assert tracker.in_flight_count == 0

    async def test_shutdown_with_no_requests(self):
        """Shutdown drains immediately when nothing is in flight."""
        tracker = RequestTracker()

        tracker.start_shutdown()
        assert tracker.is_shutting_down
        assert await tracker.wait_for_drain(timeout=1.0) is True

    async def test_shutdown_waits_for_in_flight_requests(self):
        tracker = RequestTracker()

        async def long_request():
            async with tracker.track_request():
                await asyncio.sleep(0.2)

        task = asyncio.create_task(long_request())
        await asyncio.sleep(0.05)
        tracker.start_shutdown()

        assert await tracker.wait_for_drain(timeout=2.0) is True
        assert tracker.in_flight_count == 0
        await task

    async def test_shutdown_timeout(self):
        """wait_for_drain gives up when requests outlast the timeout."""
        tracker = RequestTracker()
        release = asyncio.Event()

        async def stuck_request():
            async with tracker.track_request():
                await release.wait()

        task = asyncio.create_task(stuck_request())
        await asyncio.sleep(0.01)
        tracker.start_shutdown()

        assert await tracker.wait_for_drain(timeout=0.05) is False
        assert tracker.in_flight_count == 1

        release.set()
        await task

    async def test_reset(self):
        tracker = RequestTracker()
        tracker.start_shutdown()
        tracker.reset()
        assert not tracker.is_shutting_down
        assert tracker.in_flight_count == 0
