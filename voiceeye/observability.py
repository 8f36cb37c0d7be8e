"""
Logging, tracing and metrics setup for the voice + eye unlock engine.
"""

import asyncio
import logging
import sys
from functools import wraps
from typing import Callable, Optional

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = structlog.get_logger()

# Global tracer and meter
tracer: Optional[trace.Tracer] = None
meter: Optional[metrics.Meter] = None

# Metrics instruments
session_counter: Optional[metrics.Counter] = None
session_duration: Optional[metrics.Histogram] = None
match_counter: Optional[metrics.Counter] = None
match_score_histogram: Optional[metrics.Histogram] = None
enrollment_counter: Optional[metrics.Counter] = None
fallback_counter: Optional[metrics.Counter] = None


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure stdlib logging and structlog with JSON output.

    Args:
        log_level: Root log level name
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def setup_observability(
    service_name: str = "voice-eye-auth",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    enable_console_export: bool = False
) -> None:
    """
    Set up OpenTelemetry tracing and metrics.

    Args:
        service_name: Name of the service for tracing
        service_version: Version of the service
        otlp_endpoint: OTLP endpoint for trace/metric export
        enable_console_export: Whether to enable console export for development
    """
    global tracer, meter
    global session_counter, session_duration, match_counter
    global match_score_histogram, enrollment_counter, fallback_counter

    logger.info(
        "Setting up observability",
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint
    )

    resource = Resource.create({
        "service.name": service_name,
        "service.version": service_version,
    })

    # Set up tracing
    trace_provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))

    if enable_console_export:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter
        trace_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer(__name__)

    # Set up metrics
    metric_readers = []

    if otlp_endpoint:
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=OTLPMetricExporter(endpoint=otlp_endpoint),
                export_interval_millis=30000  # 30 seconds
            )
        )

    if enable_console_export:
        from opentelemetry.sdk.metrics.export import ConsoleMetricExporter
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=ConsoleMetricExporter(),
                export_interval_millis=60000  # 60 seconds
            )
        )

    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=metric_readers))
    meter = metrics.get_meter(__name__)

    session_counter = meter.create_counter(
        name="auth_sessions_total",
        description="Total number of authentication sessions by terminal status",
        unit="1"
    )

    session_duration = meter.create_histogram(
        name="auth_session_duration_seconds",
        description="Authentication session duration in seconds",
        unit="s"
    )

    match_counter = meter.create_counter(
        name="biometric_matches_total",
        description="Total number of biometric match attempts",
        unit="1"
    )

    match_score_histogram = meter.create_histogram(
        name="biometric_match_score",
        description="Biometric similarity scores",
        unit="1"
    )

    enrollment_counter = meter.create_counter(
        name="biometric_enrollments_total",
        description="Total number of biometric enrollments",
        unit="1"
    )

    fallback_counter = meter.create_counter(
        name="fallback_attempts_total",
        description="Total number of fallback authentication attempts",
        unit="1"
    )

    logger.info("Observability setup completed")


def trace_function(operation_name: Optional[str] = None):
    """
    Decorator to trace function execution.

    Cancellation of a traced coroutine is recorded on the span but is not
    treated as an error.

    Args:
        operation_name: Optional custom operation name for the span
    """
    def decorator(func: Callable) -> Callable:
        span_name = operation_name or f"{func.__module__}.{func.__name__}"

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            if tracer is None:
                return await func(*args, **kwargs)

            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("function.name", func.__name__)
                try:
                    result = await func(*args, **kwargs)
                    span.set_attribute("success", True)
                    return result
                except asyncio.CancelledError:
                    span.set_attribute("cancelled", True)
                    raise
                except Exception as e:
                    span.record_exception(e)
                    span.set_attribute("success", False)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            if tracer is None:
                return func(*args, **kwargs)

            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("function.name", func.__name__)
                try:
                    result = func(*args, **kwargs)
                    span.set_attribute("success", True)
                    return result
                except Exception as e:
                    span.record_exception(e)
                    span.set_attribute("success", False)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def record_authentication_metrics(status: str, processing_time: float, error: Optional[str] = None) -> None:
    """
    Record metrics for a finished authentication session.

    Args:
        status: Terminal status (complete, failed, cancelled, setup_required)
        processing_time: Session duration in seconds
        error: Error kind for failed sessions
    """
    if session_counter is None or session_duration is None:
        return

    attributes = {"status": status}
    if error:
        attributes["error"] = error

    session_counter.add(1, attributes)
    session_duration.record(processing_time, {"status": status})


def record_match_metrics(modality: str, authenticated: bool, similarity_score: Optional[float]) -> None:
    """
    Record metrics for one biometric match.

    Args:
        modality: voice or iris
        authenticated: Whether the match passed its threshold
        similarity_score: Overall similarity (if one was computed)
    """
    if match_counter is None:
        return

    attributes = {"modality": modality, "success": str(authenticated).lower()}
    match_counter.add(1, attributes)

    if similarity_score is not None and match_score_histogram is not None:
        match_score_histogram.record(similarity_score, attributes)


def record_enrollment_metrics(modality: str, success: bool) -> None:
    if enrollment_counter is None:
        return
    enrollment_counter.add(1, {"modality": modality, "success": str(success).lower()})


def record_fallback_metrics(method: Optional[str], success: bool) -> None:
    if fallback_counter is None:
        return
    fallback_counter.add(1, {"method": method or "none", "success": str(success).lower()})
