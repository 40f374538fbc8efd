import logging
import sys
from collections.abc import Iterable

import sentry_sdk
import structlog
from asgi_correlation_id.context import correlation_id
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog.contextvars import bind_contextvars, merge_contextvars


def _add_service_and_env(service_name: str, app_env: str):
    def processor(logger, method_name, event_dict):
        event_dict["service"] = service_name
        event_dict["env"] = app_env
        return event_dict

    return processor


def _add_correlation_id(logger, method_name, event_dict):
    cid = correlation_id.get(None)
    if cid is not None:
        event_dict["correlation_id"] = cid
        sentry_sdk.set_tag("correlation_id", cid)
    return event_dict


def bind_principal(user_id: str, role: str | None = None) -> None:
    """Attach the authenticated principal to every log line of this request."""
    bind_contextvars(user_id=user_id, role=role)


def configure_logging(
    service_name: str,
    *,
    app_env: str = "local",
    log_level: str = "INFO",
    sentry_dsn: str | None = None,
    sentry_traces_sample_rate: float = 0.0,
    extra_sentry_integrations: Iterable[object] | None = None,
) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)
    is_dev = app_env in {"local", "dev", "test"}

    if sentry_dsn:
        integrations = [FastApiIntegration(), *(extra_sentry_integrations or ())]
        integrations.append(LoggingIntegration(level=logging.INFO, event_level=logging.ERROR))
        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=app_env,
            integrations=integrations,
            traces_sample_rate=sentry_traces_sample_rate,
            send_default_pii=False,
        )
        sentry_sdk.set_tag("service", service_name)

    shared_processors = [
        merge_contextvars,
        _add_service_and_env(service_name, app_env),
        _add_correlation_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    renderer = structlog.dev.ConsoleRenderer() if is_dev else structlog.processors.JSONRenderer()

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
