from __future__ import annotations
import json
import logging
from typing import Any, Dict

from yearbook.core.config import settings


def format_request_line(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    body: Any = None,
    limit: int | None = None,
) -> str:
    """`GET /api/x 200 in 3ms :: {...}`, cut to `limit` chars with a trailing ellipsis."""
    limit = limit if limit is not None else settings.LOG_LINE_LIMIT
    line = f"{method} {path} {status_code} in {int(duration_ms)}ms"
    if body is not None:
        line += f" :: {json.dumps(body, ensure_ascii=False, separators=(',', ':'))}"
    if len(line) > limit:
        line = line[: limit - 1] + "…"
    return line


class StructuredLogger:
    def __init__(self, name: str = "yearbook.service"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        request_id: str | None = None,
        body: Any = None,
    ) -> None:
        """Logs an API request as a single truncated line."""
        line = format_request_line(method, path, status_code, duration_ms, body)
        self.logger.info(line, extra={"request_id": request_id})

    def log_error(
        self,
        message: str,
        error: Exception | None = None,
        request_id: str | None = None,
        extra: Dict[str, Any] | None = None,
    ) -> None:
        """Logs an error with traceback if available."""
        log_data = {
            "type": "api_error",
            "message": message,
            "request_id": request_id,
            "error_type": type(error).__name__ if error else None,
        }
        if extra:
            log_data.update(extra)
        self.logger.error(
            f"Structured error: {log_data}",
            exc_info=(type(error), error, error.__traceback__) if error else None,
        )

service_logger = StructuredLogger()
