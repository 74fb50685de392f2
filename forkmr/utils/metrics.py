import threading
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class MetricsCollector:
    """
    Prometheus metrics for forkmr jobs and workers.

    Every instance uses its own CollectorRegistry so several engines (or
    tests) can coexist in one interpreter without duplicate registrations.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self.workers_completed = Counter(
            'forkmr_workers_completed', 'Workers that finished successfully',
            ['task_type'], registry=self.registry
        )
        self.workers_failed = Counter(
            'forkmr_workers_failed', 'Workers that reported a failure',
            ['task_type'], registry=self.registry
        )
        self.workers_running = Gauge(
            'forkmr_workers_running', 'Workers currently running', registry=self.registry
        )
        self.jobs_completed = Counter('forkmr_jobs_completed', 'Jobs completed', registry=self.registry)
        self.jobs_failed = Counter('forkmr_jobs_failed', 'Jobs failed', registry=self.registry)
        self.job_duration = Histogram(
            'forkmr_job_duration_seconds', 'Job duration in seconds', registry=self.registry
        )
        self._server_thread = None

    def start_server(self, port: int = 9100):
        """Start the Prometheus HTTP endpoint in the background (once)."""
        if self._server_thread is None:
            self._server_thread = threading.Thread(
                target=start_http_server, args=(port,),
                kwargs={"registry": self.registry}, daemon=True
            )
            self._server_thread.start()

    def worker_started(self):
        self.workers_running.inc()

    def worker_finished(self, task_type: str, success: bool):
        self.workers_running.dec()
        if success:
            self.workers_completed.labels(task_type=task_type).inc()
        else:
            self.workers_failed.labels(task_type=task_type).inc()

    def job_finished(self, success: bool, duration_seconds: Optional[float] = None):
        if success:
            self.jobs_completed.inc()
        else:
            self.jobs_failed.inc()
        if duration_seconds is not None:
            self.job_duration.observe(duration_seconds)

    def get_value(self, name: str, labels: Optional[dict] = None) -> float:
        """Current value of a sample, 0.0 when it has not been recorded yet."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0
