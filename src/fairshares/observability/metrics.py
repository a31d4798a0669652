"""Prometheus metrics for Fairshares."""
from prometheus_client import Counter, Histogram


# Job metrics
jobs_enqueued_total = Counter(
    'fairshares_jobs_enqueued_total',
    'Total number of fetch jobs handed to a worker',
    ['job_type']
)

jobs_succeeded_total = Counter(
    'fairshares_jobs_succeeded_total',
    'Total number of successful fetch jobs',
    ['job_type']
)

jobs_failed_total = Counter(
    'fairshares_jobs_failed_total',
    'Total number of failed fetch jobs',
    ['job_type']
)

jobs_timed_out_total = Counter(
    'fairshares_jobs_timed_out_total',
    'Total number of fetch jobs that hit their deadline',
    ['job_type']
)

job_duration_seconds = Histogram(
    'fairshares_job_duration_seconds',
    'Fetch job duration in seconds',
    ['job_type', 'status'],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Notification metrics
notifications_sent_total = Counter(
    'fairshares_notifications_sent_total',
    'Total number of offline notifications sent'
)


def record_job_enqueued(job_type: str) -> None:
    """Record a job handed to a worker."""
    jobs_enqueued_total.labels(job_type=job_type).inc()


def record_job_succeeded(job_type: str, duration: float) -> None:
    """Record a successful job."""
    jobs_succeeded_total.labels(job_type=job_type).inc()
    job_duration_seconds.labels(job_type=job_type, status="success").observe(duration)


def record_job_failed(job_type: str, duration: float, timed_out: bool = False) -> None:
    """Record a failed job; timeouts are also counted separately."""
    jobs_failed_total.labels(job_type=job_type).inc()
    if timed_out:
        jobs_timed_out_total.labels(job_type=job_type).inc()
    job_duration_seconds.labels(job_type=job_type, status="failed").observe(duration)


def record_notification_sent() -> None:
    notifications_sent_total.inc()
