"""
=============================================================================
ACCESS LOG
=============================================================================

One line per answered connection, on the "staticserver.access" logger.

    TEXT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [18/Oct/2026:10:55:36 +0000] "GET /a.png HTTP/1.1"    │
    │     200 1234 0.52ms                                                  │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (log_format="json"):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"connection_id": "a1b2c3d4", "method": "GET", "path": "/a.png",    │
    │  "version": "HTTP/1.1", "client_ip": "127.0.0.1",                   │
    │  "status_code": 200, "content_length": 1234, "duration_ms": 0.52,   │
    │  "timestamp": "18/Oct/2026:10:55:36 +0000"}                          │
    └─────────────────────────────────────────────────────────────────────┘

Requests that never parsed (400, 505, 503) are logged with "-" for
method, path and version.

Route the access log somewhere else with plain logging configuration:

    logging.getLogger("staticserver.access").addHandler(file_handler)

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass, asdict
from typing import Optional

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    connection_id: str
    method: str
    path: str
    version: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Apache-style line, readable by the usual log tools."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.version}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits RequestLog entries in the configured format.

    Usage:
        access_log = AccessLogger(log_format="json")
        access_log.log(conn.id, conn.address, request, response, start_time)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def build(
        self,
        connection_id: str,
        client_address: tuple[str, int],
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        start_time: float,
    ) -> RequestLog:
        return RequestLog(
            connection_id=connection_id,
            method=request.method if request else "-",
            path=request.path if request else "-",
            version=str(request.version) if request else "-",
            client_ip=client_address[0],
            status_code=int(response.status),
            content_length=response.content_length,
            duration_ms=(time.time() - start_time) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def log(
        self,
        connection_id: str,
        client_address: tuple[str, int],
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        start_time: float,
    ) -> RequestLog:
        entry = self.build(connection_id, client_address, request, response, start_time)

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return entry
