from shared.middleware.request_id import request_id_middleware, request_id_var
from shared.middleware.error_handler import error_envelope_middleware, http_exception_handler

__all__ = [
    "request_id_middleware",
    "request_id_var",
    "error_envelope_middleware",
    "http_exception_handler",
]
