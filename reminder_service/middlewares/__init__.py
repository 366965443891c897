from .request_id_middleware import *
from .gateway_auth import *

__all__ = [
    "RequestIDMiddleware",
    "AuthState",
    "get_current_user",
    "require_admin",
]
