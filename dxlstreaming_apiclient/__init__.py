from .base_client_mixin import ApiClientAbstract
from .config import TransportConfig
from .connection import HttpConnection
from .exceptions import TransportError
from .helpers import HTTPMethod, build_verify, describe_request, join_url

__all__ = [
    "ApiClientAbstract",
    "HttpConnection",
    "HTTPMethod",
    "TransportConfig",
    "TransportError",
    "build_verify",
    "describe_request",
    "join_url",
]
