from contextvars import ContextVar
from typing import Optional

# Id of the HTTP request being served, set by RequestIDMiddleware
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_context.get()
