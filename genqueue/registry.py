"""Composition root owning one queue per work category."""

import time
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import structlog

from genqueue.config import QueueConfig, Settings
from genqueue.monitoring.metrics import MetricsCollector
from genqueue.queue import JobQueue
from genqueue.schemas import QueueStats

logger = structlog.get_logger()


class QueueRegistry:
    """Independent job queues keyed by category name.

    Queues share nothing: each has its own backlog, worker and timings.
    """

    def __init__(
        self,
        configs: Iterable[QueueConfig],
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._queues: Dict[str, JobQueue] = {}
        for config in configs:
            if config.name in self._queues:
                raise ValueError(f"Duplicate queue name: {config.name}")
            self._queues[config.name] = JobQueue(config, clock=clock, metrics=metrics)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "QueueRegistry":
        configs = [
            config if config.name == name else config.model_copy(update={"name": name})
            for name, config in settings.queues.items()
        ]
        return cls(configs, **kwargs)

    def get(self, name: str) -> JobQueue:
        try:
            return self._queues[name]
        except KeyError:
            raise KeyError(f"Unknown queue: {name}") from None

    def names(self) -> List[str]:
        return list(self._queues)

    def __contains__(self, name: str) -> bool:
        return name in self._queues

    def __iter__(self) -> Iterator[JobQueue]:
        return iter(self._queues.values())

    def __len__(self) -> int:
        return len(self._queues)

    def stats(self) -> Dict[str, QueueStats]:
        return {name: queue.stats() for name, queue in self._queues.items()}

    def start(self):
        for queue in self._queues.values():
            queue.start()
        logger.info("Queue registry started", queues=self.names())

    async def stop(self):
        for queue in self._queues.values():
            await queue.stop()
        logger.info("Queue registry stopped")

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.stop()
