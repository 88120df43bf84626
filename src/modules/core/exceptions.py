"""DRF exception handler rendering framework errors as ``{code, message}``.

Domain errors, order request validation included, are rendered by the
views themselves through ``OrderError.to_payload()``.  This handler covers
what DRF raises on its own (parse errors, 404/405, and any
``ValidationError`` raised outside those views).  Validation errors
become ``VALIDATION_FAILED`` with ``field`` naming the first offending
path, e.g. ``items[0].quantity``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import structlog
from django.http import Http404
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.settings import api_settings
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)

VALIDATION_FAILED = "VALIDATION_FAILED"

_CODES_BY_STATUS = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    406: "NOT_ACCEPTABLE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "THROTTLED",
}


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, (exceptions.ValidationError, exceptions.ParseError)):
        field, message = first_error(response.data)
        payload: Dict[str, Any] = {"code": VALIDATION_FAILED, "message": message}
        if field:
            payload["field"] = field
        if isinstance(exc, exceptions.ValidationError):
            payload["errors"] = response.data
        logger.info("request.validation_failed", field=field, message=message)
    else:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        if isinstance(exc, Http404):
            message = "Not found."
        else:
            message = str(detail) if detail is not None else str(exc)
        payload = {
            "code": _CODES_BY_STATUS.get(response.status_code, "ERROR"),
            "message": message,
        }

    response.data = payload
    return response


def first_error(detail: Any, path: str = "") -> Tuple[str, str]:
    """Walk DRF error detail depth-first and return ``(path, message)``."""
    if isinstance(detail, dict):
        for key, value in detail.items():
            if not _has_error(value):
                continue
            if key in (api_settings.NON_FIELD_ERRORS_KEY, "detail"):
                return first_error(value, path)
            return first_error(value, f"{path}.{key}" if path else str(key))
    elif isinstance(detail, list):
        for index, value in enumerate(detail):
            if not _has_error(value):
                continue
            if isinstance(value, dict):
                return first_error(value, f"{path}[{index}]")
            return first_error(value, path)
    return path, str(detail)


def _has_error(value: Any) -> bool:
    if isinstance(value, (dict, list)):
        return any(_has_error(v) for v in (value.values() if isinstance(value, dict) else value))
    return bool(value)
