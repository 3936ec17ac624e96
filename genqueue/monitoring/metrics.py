"""Prometheus metrics collection for the job queues."""

from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger()


class MetricsCollector:
    """Collects and exposes Prometheus metrics for every queue in the process."""

    def __init__(self, registry: CollectorRegistry = None):
        """Initialize metrics collector."""
        self.registry = registry or CollectorRegistry()

        # Job metrics
        self.jobs_submitted = Counter(
            'genqueue_jobs_submitted_total',
            'Total number of jobs accepted into a backlog',
            ['queue'],
            registry=self.registry
        )

        self.jobs_finished = Counter(
            'genqueue_jobs_finished_total',
            'Total number of jobs that reached a terminal status',
            ['queue', 'status'],
            registry=self.registry
        )

        self.job_timeouts = Counter(
            'genqueue_job_timeouts_total',
            'Total number of jobs failed by their deadline',
            ['queue'],
            registry=self.registry
        )

        self.job_execution_time = Histogram(
            'genqueue_job_execution_seconds',
            'Job execution time in seconds',
            ['queue'],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, float('inf')],
            registry=self.registry
        )

        # Queue metrics
        self.backlog_size = Gauge(
            'genqueue_backlog_size',
            'Current number of queued jobs',
            ['queue'],
            registry=self.registry
        )

        # System metrics
        self.system_info = Info(
            'genqueue_system',
            'System information',
            registry=self.registry
        )

        self.system_info.info({
            'version': '1.0.0',
            'component': 'genqueue'
        })

    def record_job_submitted(self, queue: str):
        """Record a job submission."""
        self.jobs_submitted.labels(queue=queue).inc()
        logger.debug("Job submission recorded", queue=queue)

    def record_job_finished(self, queue: str, status: str, execution_time: float = None):
        """Record a job reaching a terminal status."""
        self.jobs_finished.labels(queue=queue, status=status).inc()
        if execution_time is not None:
            self.job_execution_time.labels(queue=queue).observe(execution_time)
        logger.debug("Job completion recorded",
                     queue=queue,
                     status=status,
                     execution_time=execution_time)

    def record_job_timeout(self, queue: str):
        """Record a job timeout."""
        self.job_timeouts.labels(queue=queue).inc()

    def update_backlog_size(self, queue: str, size: int):
        """Update backlog size metric."""
        self.backlog_size.labels(queue=queue).set(size)

    def get_metrics(self) -> str:
        """Get metrics in Prometheus format."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
metrics = MetricsCollector()
