# survivor/utils/observability.py
import logging
import uuid
import contextvars

import structlog
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry

# Correlation ID shared by every log line of one scheduler tick
CORRELATION_ID = contextvars.ContextVar('correlation_id', default=None)


class ObservabilityConfig:
    """Configuration for observability stack."""

    def __init__(self):
        from survivor.config import settings

        obs = settings.observability
        self.environment = obs.environment
        self.log_level = obs.log_level
        self.enable_metrics = obs.enable_metrics
        self.log_format = 'json' if self.environment == 'production' else 'console'


class MetricsRegistry:
    """Centralized metrics management."""

    def __init__(self):
        self.registry = CollectorRegistry()
        self._init_metrics()

    def _init_metrics(self):
        """Initialize all metrics with proper naming conventions."""

        # HISTOGRAMS (timing data)
        self.tick_duration = Histogram(
            'cascade_tick_duration_seconds',
            'Cascade tick duration in seconds',
            buckets=(0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0),
            registry=self.registry
        )

        # COUNTERS (monotonic increases)
        self.ticks = Counter(
            'cascade_ticks_total',
            'Cascade ticks run',
            labelnames=['status'],  # 'processed', 'idle' or 'failed'
            registry=self.registry
        )

        self.games_completed = Counter(
            'games_completed_total',
            'Games that transitioned to final',
            registry=self.registry
        )

        self.picks_graded = Counter(
            'picks_graded_total',
            'Picks graded',
            labelnames=['outcome'],  # 'correct' or 'incorrect'
            registry=self.registry
        )

        self.entries_eliminated = Counter(
            'entries_eliminated_total',
            'Entries eliminated',
            labelnames=['reason'],
            registry=self.registry
        )

        self.pools_completed = Counter(
            'pools_completed_total',
            'Pools marked complete',
            registry=self.registry
        )

        self.mutation_errors = Counter(
            'mutation_errors_total',
            'Single-item write failures',
            labelnames=['step'],
            registry=self.registry
        )

        self.feed_failures = Counter(
            'score_feed_failures_total',
            'Score feed requests that failed after retries',
            registry=self.registry
        )

        self.bracket_builds = Counter(
            'bracket_builds_total',
            'Bracket generation runs',
            labelnames=['status'],  # 'success', 'partial' or 'failed'
            registry=self.registry
        )

        # GAUGES (point-in-time snapshots)
        self.alive_entries = Gauge(
            'alive_entries',
            'Entries still alive after the last tick',
            registry=self.registry
        )

        self.last_tick_timestamp = Gauge(
            'last_tick_timestamp_unix',
            'Unix timestamp of last cascade tick',
            registry=self.registry
        )


class StructlogConfig:
    """Structured logging configuration."""

    @staticmethod
    def configure(env: str = 'development', log_level: str = 'INFO'):
        """
        Configure structlog with environment-appropriate settings.

        Production: JSON output (machine-readable)
        Development: Console output (human-readable)
        """

        shared_processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt='iso'),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
        ]

        if env == 'production':
            processors = shared_processors + [
                structlog.processors.dict_tracebacks,
                structlog.processors.JSONRenderer(),
            ]
        else:
            processors = shared_processors + [
                structlog.dev.ConsoleRenderer(),
            ]

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(
                logging.getLevelName(log_level)
            ),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(),
            cache_logger_on_first_use=True,
        )


class Logger:
    """Wrapper for structured logging with context awareness."""

    def __init__(self, module_name: str):
        self.logger = structlog.get_logger(module_name)
        self.module_name = module_name

    def with_correlation_id(self, correlation_id: str = None):
        """Bind correlation ID to all subsequent logs."""
        correlation_id = correlation_id or uuid.uuid4().hex[:12]
        CORRELATION_ID.set(correlation_id)
        return self.logger.bind(correlation_id=correlation_id)

    def log_event(self, event: str, **kwargs):
        """Log structured event with automatic context."""
        ctx = {'correlation_id': CORRELATION_ID.get(), 'module': self.module_name}
        ctx.update(kwargs)
        return self.logger.info(event, **ctx)

    def log_warning(self, event: str, **kwargs):
        """Log an operator-facing anomaly."""
        ctx = {'correlation_id': CORRELATION_ID.get(), 'module': self.module_name}
        ctx.update(kwargs)
        return self.logger.warning(event, **ctx)

    def log_error(self, event: str, exc_info=None, **kwargs):
        """Log error with exception details."""
        ctx = {'correlation_id': CORRELATION_ID.get(), 'module': self.module_name}
        ctx.update(kwargs)
        return self.logger.error(event, exc_info=exc_info, **ctx)


def initialize_observability(environment: str = None):
    """One-stop initialization for all observability components."""
    config = ObservabilityConfig()
    environment = environment or config.environment
    StructlogConfig.configure(env=environment, log_level=config.log_level)
    metrics = MetricsRegistry()

    logger = structlog.get_logger(__name__)
    logger.info(
        'observability_initialized',
        environment=environment,
        log_format=config.log_format,
        metrics_enabled=config.enable_metrics,
    )

    return metrics, config


# Global metrics instance
METRICS = None
CONFIG = None


def get_metrics() -> MetricsRegistry:
    """Lazy-load metrics singleton."""
    global METRICS, CONFIG
    if METRICS is None:
        METRICS, CONFIG = initialize_observability()
    return METRICS
