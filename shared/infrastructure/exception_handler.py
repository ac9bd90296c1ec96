"""DRF exception handler rendering domain errors."""

from __future__ import annotations

import structlog
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from shared.domain.errors import DomainError

logger = structlog.get_logger(__name__)


def domain_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        view = context.get("view")
        log = logger.error if exc.http_status >= 500 else logger.info
        log(
            "api.domain_error",
            code=exc.code.value,
            status=exc.http_status,
            view=view.__class__.__name__ if view else None,
            error=exc.message,
        )
        return Response(exc.to_dict(), status=exc.http_status)
    return exception_handler(exc, context)
