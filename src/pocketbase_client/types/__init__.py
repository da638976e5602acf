"""Response models for the PocketBase client."""

from pocketbase_client.types.auth import (
    AuthMethodMFA,
    AuthMethodOAuth2,
    AuthMethodOTP,
    AuthMethodPassword,
    AuthMethodProvider,
    AuthMethodsList,
    OTPResponse,
)
from pocketbase_client.types.batch import BatchResult
from pocketbase_client.types.collections import CollectionModel
from pocketbase_client.types.health import HealthCheck
from pocketbase_client.types.records import (
    RecordAuth,
    RecordModel,
    RecordSubscriptionEvent,
    ResultList,
)

__all__ = [
    "AuthMethodMFA",
    "AuthMethodOAuth2",
    "AuthMethodOTP",
    "AuthMethodPassword",
    "AuthMethodProvider",
    "AuthMethodsList",
    "BatchResult",
    "CollectionModel",
    "HealthCheck",
    "OTPResponse",
    "RecordAuth",
    "RecordModel",
    "RecordSubscriptionEvent",
    "ResultList",
]
