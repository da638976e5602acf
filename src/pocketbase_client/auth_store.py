"""
Auth state holder.

The store keeps the bearer token and the authenticated record, answers
whether the token is still usable and notifies observers on every change.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from pocketbase_client.types.records import RecordModel
from pocketbase_client.utils.events import EventStream
from pocketbase_client.utils.serial_queue import SerialQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthStoreEvent:
    """Auth state snapshot delivered to ``AuthStore.on_change`` observers."""

    token: str
    record: RecordModel | None


def decode_token_payload(token: str) -> dict[str, Any] | None:
    """
    Decode the claims segment of a JWT without verifying it.

    Returns ``None`` for anything that isn't a three segment token with a JSON
    object payload.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None

    segment = parts[1]
    segment += "=" * (-len(segment) % 4)

    try:
        payload = json.loads(base64.urlsafe_b64decode(segment).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None

    return payload if isinstance(payload, dict) else None


class AuthStore:
    """
    In-memory auth state.

    Example:
        >>> store = AuthStore()
        >>> unsubscribe = store.on_change.subscribe(lambda e: print(e.token))
        >>> store.save("eyJ...", record)
        >>> store.is_valid()
    """

    def __init__(self) -> None:
        self._token = ""
        self._record: RecordModel | None = None
        self.on_change: EventStream[AuthStoreEvent] = EventStream()

    @property
    def token(self) -> str:
        return self._token

    @property
    def record(self) -> RecordModel | None:
        return self._record

    def is_valid(self) -> bool:
        """Check whether the token is present and its ``exp`` claim is in the future."""
        if not self._token:
            return False

        payload = decode_token_payload(self._token)
        if payload is None:
            return False

        exp = payload.get("exp")
        if isinstance(exp, bool):
            return False
        if isinstance(exp, str):
            try:
                exp = float(exp)
            except ValueError:
                return False
        if not isinstance(exp, (int, float)):
            return False

        return exp > time.time()

    def save(self, token: str, record: RecordModel | None) -> None:
        """Replace the stored token and record."""
        self._token = token or ""
        self._record = record
        self.on_change.emit(AuthStoreEvent(self._token, self._record))

    def clear(self) -> None:
        """Remove the stored token and record."""
        self._token = ""
        self._record = None
        self.on_change.emit(AuthStoreEvent(self._token, self._record))


SaveFn = Callable[[str], "Awaitable[None] | None"]
ClearFn = Callable[[], "Awaitable[None] | None"]


class PersistentAuthStore(AuthStore):
    """
    Auth store that mirrors every change into external storage.

    Args:
        save: Called with the JSON encoded ``{"token", "record"}`` blob
        initial: Previously saved blob to restore on construction
        clear: Called on :meth:`clear`; when omitted ``save("")`` is used

    Both callables may be coroutine functions; writes are applied one at a
    time in the order the changes happened.

    Example:
        >>> store = PersistentAuthStore(
        ...     save=lambda blob: Path("auth.json").write_text(blob),
        ...     initial=Path("auth.json").read_text(),
        ... )
    """

    def __init__(
        self,
        save: SaveFn,
        initial: str | None = None,
        clear: ClearFn | None = None,
    ) -> None:
        super().__init__()
        self._save_fn = save
        self._clear_fn = clear
        self._queue = SerialQueue()

        self._load_initial(initial)

    @property
    def queue(self) -> SerialQueue:
        return self._queue

    def save(self, token: str, record: RecordModel | None) -> None:
        super().save(token, record)

        encoded = json.dumps(
            {
                "token": token,
                "record": record.to_dict() if record is not None else None,
            }
        )
        self._queue.enqueue(lambda: self._save_fn(encoded))

    def clear(self) -> None:
        super().clear()

        if self._clear_fn is None:
            self._queue.enqueue(lambda: self._save_fn(""))
        else:
            self._queue.enqueue(self._clear_fn)

    def _load_initial(self, initial: str | None) -> None:
        if not initial:
            return

        try:
            decoded = json.loads(initial)
            token = decoded.get("token") or ""
            raw_record = decoded.get("record") or decoded.get("model")
            record = RecordModel.model_validate(raw_record) if raw_record else None
        except (ValueError, AttributeError, PydanticValidationError) as e:
            logger.warning("Ignoring unreadable stored auth state: %s", e)
            return

        # Restore without writing the same blob straight back.
        AuthStore.save(self, token, record)
