"""Стратегии аутентификации канала."""

from .base import CachedTokenAuth, ChannelAuth
from .client_credentials import ChannelAuthClientCredentialSecret, get_token
from .static_token import ChannelAuthToken
from .user_pass import ChannelAuthUserPass, login

__all__ = [
    "ChannelAuth",
    "CachedTokenAuth",
    "ChannelAuthToken",
    "ChannelAuthUserPass",
    "ChannelAuthClientCredentialSecret",
    "login",
    "get_token",
]
