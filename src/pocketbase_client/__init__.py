"""
PocketBase client SDK for Python.

Sync and async clients for the PocketBase REST API, with realtime
subscriptions over a server-sent events stream on the async client.
"""

from pocketbase_client.async_client import AsyncPocketBase, create_async_client
from pocketbase_client.auth_store import AuthStore, AuthStoreEvent, PersistentAuthStore
from pocketbase_client.client import PocketBase, create_client
from pocketbase_client.config import (
    SDK_VERSION,
    PocketBaseClientConfig,
    RealtimeConfig,
    ResolvedConfig,
)
from pocketbase_client.errors import (
    AuthenticationError,
    AuthorizationError,
    ClientException,
    NetworkError,
    NotFoundError,
    PayloadTooLargeError,
    RateLimitError,
    RealtimeConnectionError,
    ServerError,
    StreamClosedError,
    TimeoutError,
    ValidationError,
    is_client_exception,
)
from pocketbase_client.realtime import RealtimeService, SseMessage
from pocketbase_client.types import (
    AuthMethodsList,
    BatchResult,
    CollectionModel,
    HealthCheck,
    OTPResponse,
    RecordAuth,
    RecordModel,
    RecordSubscriptionEvent,
    ResultList,
)
from pocketbase_client.utils.http import FilePart

__version__ = SDK_VERSION

__all__ = [
    "__version__",
    # Clients
    "PocketBase",
    "AsyncPocketBase",
    "create_client",
    "create_async_client",
    # Config
    "PocketBaseClientConfig",
    "RealtimeConfig",
    "ResolvedConfig",
    # Auth
    "AuthStore",
    "AuthStoreEvent",
    "PersistentAuthStore",
    # Errors
    "ClientException",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "PayloadTooLargeError",
    "RateLimitError",
    "ServerError",
    "NetworkError",
    "TimeoutError",
    "RealtimeConnectionError",
    "StreamClosedError",
    "is_client_exception",
    # Realtime
    "RealtimeService",
    "SseMessage",
    # Types
    "AuthMethodsList",
    "BatchResult",
    "CollectionModel",
    "FilePart",
    "HealthCheck",
    "OTPResponse",
    "RecordAuth",
    "RecordModel",
    "RecordSubscriptionEvent",
    "ResultList",
]
