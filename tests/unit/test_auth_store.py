"""Unit tests for the auth stores."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Callable
from typing import Any

import pytest

from pocketbase_client.auth_store import (
    AuthStore,
    AuthStoreEvent,
    PersistentAuthStore,
    decode_token_payload,
)
from pocketbase_client.types.records import RecordModel

TokenFactory = Callable[[dict[str, Any]], str]


class TestIsValid:
    """Tests for AuthStore.is_valid."""

    def test_future_exp(self, valid_token: str) -> None:
        """Test a token expiring in the future."""
        store = AuthStore()
        store.save(valid_token, None)
        assert store.is_valid() is True

    def test_past_exp(self, expired_token: str) -> None:
        """Test an expired token."""
        store = AuthStore()
        store.save(expired_token, None)
        assert store.is_valid() is False

    def test_not_a_jwt(self) -> None:
        """Test a token that isn't a JWT."""
        store = AuthStore()
        store.save("not.a.jwt", None)
        assert store.is_valid() is False
        store.save("not.ajwt", None)
        assert store.is_valid() is False

    def test_empty_token(self) -> None:
        """Test the initial empty store."""
        assert AuthStore().is_valid() is False

    def test_garbage_payload(self) -> None:
        """Test a payload that isn't base64 JSON."""
        store = AuthStore()
        store.save("a.!!!.c", None)
        assert store.is_valid() is False

    def test_missing_exp(self, token_factory: TokenFactory) -> None:
        """Test a payload without exp."""
        store = AuthStore()
        store.save(token_factory({"id": "x"}), None)
        assert store.is_valid() is False

    def test_string_exp(self, token_factory: TokenFactory) -> None:
        """Test a numeric string exp."""
        store = AuthStore()
        store.save(token_factory({"exp": str(int(time.time()) + 60)}), None)
        assert store.is_valid() is True
        store.save(token_factory({"exp": "tomorrow"}), None)
        assert store.is_valid() is False

    def test_bool_exp(self, token_factory: TokenFactory) -> None:
        """Test a boolean exp is rejected."""
        store = AuthStore()
        store.save(token_factory({"exp": True}), None)
        assert store.is_valid() is False


class TestDecodeTokenPayload:
    """Tests for decode_token_payload."""

    def test_decodes_unpadded_payload(self, token_factory: TokenFactory) -> None:
        """Test base64url payloads without padding."""
        assert decode_token_payload(token_factory({"id": "abc"})) == {"id": "abc"}

    def test_non_object_payload(self) -> None:
        """Test a JSON payload that isn't an object."""
        assert decode_token_payload("a.WzFd.c") is None


class TestAuthStoreChanges:
    """Tests for AuthStore change notifications."""

    def test_save_and_clear_emit(self, valid_token: str) -> None:
        """Test observers see every change."""
        store = AuthStore()
        events: list[AuthStoreEvent] = []
        store.on_change.subscribe(events.append)

        record = RecordModel(id="user_1")
        store.save(valid_token, record)
        store.clear()

        assert events == [AuthStoreEvent(valid_token, record), AuthStoreEvent("", None)]
        assert store.token == ""
        assert store.record is None

    def test_late_subscriber_gets_history(self, valid_token: str) -> None:
        """Test history replay for late subscribers."""
        store = AuthStore()
        store.save(valid_token, None)

        events: list[AuthStoreEvent] = []
        store.on_change.subscribe(events.append)
        assert [e.token for e in events] == [valid_token]

        later: list[AuthStoreEvent] = []
        store.on_change.subscribe(later.append, replay_history=False)
        assert later == []


class TestPersistentAuthStore:
    """Tests for PersistentAuthStore."""

    def test_save_writes_blob(self, valid_token: str) -> None:
        """Test save hands the serialized state to the save callable."""
        saved: list[str] = []
        store = PersistentAuthStore(save=saved.append)

        store.save(valid_token, RecordModel(id="user_1", collection_name="users"))

        assert len(saved) == 1
        blob = json.loads(saved[0])
        assert blob["token"] == valid_token
        assert blob["record"]["id"] == "user_1"
        assert blob["record"]["collectionName"] == "users"

    def test_clear_without_clear_fn(self) -> None:
        """Test clear falls back to saving an empty blob."""
        saved: list[str] = []
        store = PersistentAuthStore(save=saved.append)
        store.clear()
        assert saved == [""]

    def test_clear_with_clear_fn(self) -> None:
        """Test clear uses the clear callable when given."""
        saved: list[str] = []
        cleared: list[bool] = []
        store = PersistentAuthStore(save=saved.append, clear=lambda: cleared.append(True))
        store.clear()
        assert saved == []
        assert cleared == [True]

    def test_restores_initial(self, valid_token: str) -> None:
        """Test the initial blob is loaded without being written back."""
        saved: list[str] = []
        initial = json.dumps({"token": valid_token, "record": {"id": "user_1"}})

        store = PersistentAuthStore(save=saved.append, initial=initial)

        assert store.token == valid_token
        assert store.record is not None
        assert store.record.id == "user_1"
        assert store.is_valid() is True
        assert saved == []

    def test_restores_legacy_model_key(self, valid_token: str) -> None:
        """Test blobs that store the record under "model"."""
        initial = json.dumps({"token": valid_token, "model": {"id": "user_2"}})
        store = PersistentAuthStore(save=lambda blob: None, initial=initial)
        assert store.record is not None
        assert store.record.id == "user_2"

    def test_ignores_corrupt_initial(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test an undecodable blob is logged and ignored."""
        store = PersistentAuthStore(save=lambda blob: None, initial="{not json")
        assert store.token == ""
        assert "Ignoring unreadable stored auth state" in caplog.text

    @pytest.mark.asyncio
    async def test_async_writes_are_serialized(self, valid_token: str) -> None:
        """Test coroutine save callables run one at a time, in order."""
        written: list[str] = []
        running = 0
        overlap = False

        async def save(blob: str) -> None:
            nonlocal running, overlap
            running += 1
            overlap = overlap or running > 1
            await asyncio.sleep(0.01)
            written.append(json.loads(blob)["token"] if blob else "")
            running -= 1

        store = PersistentAuthStore(save=save)
        store.save(valid_token, None)
        store.save("second", None)
        store.clear()

        await store.queue.join()

        assert written == [valid_token, "second", ""]
        assert overlap is False

    @pytest.mark.asyncio
    async def test_failed_write_does_not_stop_queue(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a failing save callable is logged and later writes still run."""
        written: list[str] = []

        async def save(blob: str) -> None:
            if not written:
                written.append("failed")
                raise OSError("disk full")
            written.append(blob)

        store = PersistentAuthStore(save=save)
        store.save("one", None)
        store.save("two", None)
        await store.queue.join()

        assert written[0] == "failed"
        assert json.loads(written[1])["token"] == "two"
        assert "Queued operation failed" in caplog.text
