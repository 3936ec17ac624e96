import asyncio
import time

import pytest

from genqueue.config import QueueConfig
from genqueue.monitoring.metrics import MetricsCollector
from genqueue.queue import JobQueue


class FakeClock:
    """Manually advanced clock for retention tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def collector():
    return MetricsCollector()


@pytest.fixture
async def make_queue(collector):
    """Factory for queues with test-sized timings; stops them afterwards."""
    created = []

    def _make(name="test", clock=time.time, **overrides):
        options = {"timeout_seconds": 1.0, "average_job_seconds": 10.0, "inter_job_delay_seconds": 0.0}
        options.update(overrides)
        queue = JobQueue(QueueConfig(name=name, **options), clock=clock, metrics=collector)
        created.append(queue)
        return queue

    yield _make

    for queue in created:
        await queue.stop()


@pytest.fixture
async def gate():
    """Event that held jobs wait on."""
    return asyncio.Event()


@pytest.fixture
def fake_clock():
    return FakeClock()
