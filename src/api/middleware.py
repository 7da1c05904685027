"""
Request correlation.

Each request gets an id (the caller's X-Request-ID when it is sane, otherwise a
fresh one). The id is echoed in the response header, stamped on every log
record and stored on audit events and error bodies.
"""

import logging
import re
from contextvars import ContextVar
from uuid import uuid4

from fastapi import Request

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def configure_logging(level: str) -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    already_installed = any(
        isinstance(f, RequestIdFilter) for handler in root.handlers for f in handler.filters
    )
    if already_installed:
        return

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request_id_var.get()


async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get(REQUEST_ID_HEADER, "")
    request_id = incoming if REQUEST_ID_PATTERN.match(incoming) else uuid4().hex
    request.state.request_id = request_id

    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
