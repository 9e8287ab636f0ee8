"""OpenTelemetry tracing for codemate.

``opentelemetry-api`` is a core dependency, so application code can always
ask for a tracer::

    from codemate.infrastructure.telemetry import get_tracer

    with get_tracer().start_as_current_span("codemate.my_operation") as span:
        span.set_attribute("key", "value")

Until ``setup_telemetry`` installs a provider, the API hands out
non-recording spans and nothing is exported.  Exporting needs the SDK
(``pip install "codemate[otel]"``).

Configuration (``CodemateConfig.telemetry``)::

    telemetry:
        enabled: true
        exporter: console      # "none" | "console" | "otlp"
        service_name: codemate
        otlp_endpoint: ""      # required when exporter="otlp"
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

if TYPE_CHECKING:
    from codemate.config import CodemateConfig

logger = logging.getLogger(__name__)

TRACER_NAME = "codemate"

_tracer: Any = None  # tracer from the provider set up by setup_telemetry


def setup_telemetry(config: "CodemateConfig") -> None:
    """Initialise the tracer provider from ``config.telemetry``.

    Safe to call more than once; only the first successful call configures a
    provider.  Disabled telemetry, or a missing SDK, leaves the API default
    (non-recording) tracer in place.
    """
    global _tracer  # noqa: PLW0603

    if _tracer is not None:
        return

    tel_cfg = config.telemetry
    if tel_cfg is None or not tel_cfg.enabled:
        logger.debug("Telemetry disabled or not configured")
        return

    try:
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
    except ImportError:
        logger.warning(
            "Telemetry is enabled in config but opentelemetry-sdk is not installed. "
            "Install with: pip install 'codemate[otel]'"
        )
        return

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: tel_cfg.service_name}))

    if tel_cfg.exporter == "console":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("Telemetry: console exporter configured (service=%s)", tel_cfg.service_name)
    elif tel_cfg.exporter == "otlp":
        if not tel_cfg.otlp_endpoint:
            logger.warning("Telemetry exporter='otlp' but otlp_endpoint is not set; traces dropped")
        else:
            try:
                from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
            except ImportError:
                logger.warning(
                    "OTLP exporter requested but 'opentelemetry-exporter-otlp-proto-grpc' is not installed. "
                    "Install with: pip install 'codemate[otel]'"
                )
            else:
                provider.add_span_processor(
                    BatchSpanProcessor(OTLPSpanExporter(endpoint=tel_cfg.otlp_endpoint))
                )
                logger.info(
                    "Telemetry: OTLP exporter configured (endpoint=%s service=%s)",
                    tel_cfg.otlp_endpoint, tel_cfg.service_name,
                )

    trace.set_tracer_provider(provider)
    _tracer = provider.get_tracer(TRACER_NAME)
    logger.debug("Telemetry initialised: exporter=%s", tel_cfg.exporter)


def get_tracer() -> Any:
    """Return the configured tracer, or the API's global tracer."""
    return _tracer if _tracer is not None else trace.get_tracer(TRACER_NAME)


def reset_for_testing() -> None:
    """Forget the configured tracer. Not for production use."""
    global _tracer  # noqa: PLW0603
    _tracer = None
