"""
Request execution and streaming for the X API.
"""

from __future__ import annotations

import logging

from x_transport.auth import Authorizer, BearerAuthorizer, OAuth1Authorizer
from x_transport.clients.executor import XExecutor
from x_transport.clients.streaming import StreamState
from x_transport.config import ConfigManager, ExecutorSettings, XCredentials
from x_transport.exceptions import (
    ApiResponseError,
    CancellationError,
    ConfigurationError,
    ConnectivityError,
    MediaValidationError,
    ProtocolViolation,
    RateLimitExceeded,
    RequestTimeout,
    XTransportError,
)
from x_transport.factory import XExecutorFactory
from x_transport.models import (
    ApiResponse,
    MediaUploadResult,
    RequestDescriptor,
    RequestParameter,
    ResponseMetadata,
    StreamFrame,
)
from x_transport.services.media_service import ChunkedMediaUploader, MediaService

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ApiResponse",
    "ApiResponseError",
    "Authorizer",
    "BearerAuthorizer",
    "CancellationError",
    "ChunkedMediaUploader",
    "ConfigManager",
    "ConfigurationError",
    "ConnectivityError",
    "ExecutorSettings",
    "MediaService",
    "MediaUploadResult",
    "MediaValidationError",
    "OAuth1Authorizer",
    "ProtocolViolation",
    "RateLimitExceeded",
    "RequestDescriptor",
    "RequestParameter",
    "RequestTimeout",
    "ResponseMetadata",
    "StreamFrame",
    "StreamState",
    "XCredentials",
    "XExecutor",
    "XExecutorFactory",
    "XTransportError",
]
