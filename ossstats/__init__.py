"""GitHub open source contribution stats."""

from .__version__ import __version__
from .client import OssStatsClient
from .config import ClientConfig
from .exceptions import (
    AuthenticationFailed,
    Cancelled,
    DecodeError,
    OssStatsError,
    PartialResults,
    RateLimited,
    TransportError,
    UserNotFound,
)
from .models import Contribution, Stats, Summary

__all__ = [
    "__version__",
    "AuthenticationFailed",
    "Cancelled",
    "ClientConfig",
    "Contribution",
    "DecodeError",
    "OssStatsClient",
    "OssStatsError",
    "PartialResults",
    "RateLimited",
    "Stats",
    "Summary",
    "TransportError",
    "UserNotFound",
]
