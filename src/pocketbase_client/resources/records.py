"""
Records resource.

CRUD over the records of one collection, the auth endpoints of auth
collections and (async only) realtime record subscriptions and the
interactive OAuth2 flow.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import httpx

from pocketbase_client.auth_store import decode_token_payload
from pocketbase_client.config import OAUTH2_REDIRECT_PATH, OAUTH2_TOPIC
from pocketbase_client.errors import ClientException
from pocketbase_client.realtime.message import SseMessage
from pocketbase_client.resources.crud import AsyncCrudResource, CrudResource, build_query
from pocketbase_client.types.auth import AuthMethodsList, OTPResponse
from pocketbase_client.types.records import RecordAuth, RecordModel, RecordSubscriptionEvent
from pocketbase_client.utils.url import encode_segment

if TYPE_CHECKING:
    from pocketbase_client.async_client import AsyncPocketBase
    from pocketbase_client.client import PocketBase
    from pocketbase_client.realtime.service import RealtimeService, UnsubscribeFunc
    from pocketbase_client.utils.async_http import AsyncHttpClient
    from pocketbase_client.utils.http import HttpClient

AUTH_METHODS_FIELDS = "mfa,otp,password,oauth2"

RecordSubscriptionCallback = Callable[[RecordSubscriptionEvent], Any]
OAuth2UrlCallback = Callable[[str], "Awaitable[None] | None"]


def with_defaults(body: Mapping[str, Any] | None = None, **values: Any) -> dict[str, Any]:
    """Copy ``body`` and add every non-None keyword it doesn't already contain."""
    merged = dict(body or {})
    for key, value in values.items():
        if value is not None:
            merged.setdefault(key, value)
    return merged


def build_oauth2_url(auth_url: str, state: str, scopes: Sequence[str] | None = None) -> str:
    """Provider authorization URL with the ``state`` (and ``scope``) parameters set."""
    url = httpx.URL(auth_url)
    params = url.params.set("state", state)
    if scopes:
        params = params.set("scope", " ".join(scopes))
    return str(url.copy_with(params=params))


class _RecordsMixin:
    """Paths and auth store bookkeeping shared by the sync and async resources."""

    _http: Any
    _collection: str

    @property
    def collection_name(self) -> str:
        return self._collection

    @property
    def _collection_path(self) -> str:
        return f"/api/collections/{encode_segment(self._collection)}"

    def _is_auth_record(self, id: str) -> bool:
        record = self._http.auth_store.record
        return (
            record is not None
            and bool(record.id)
            and record.id == id
            and self._collection in (record.collection_id, record.collection_name)
        )

    def _sync_after_update(self, item: RecordModel) -> None:
        """Merge an update of the authenticated record into the auth store."""
        store = self._http.auth_store
        if not self._is_auth_record(item.id):
            return

        data = store.record.to_dict()
        current_expand = data.get("expand") or {}
        updated = item.to_dict()

        data.update(updated)
        if current_expand:
            data["expand"] = {**current_expand, **(updated.get("expand") or {})}

        store.save(store.token, RecordModel.model_validate(data))

    def _sync_after_delete(self, id: str) -> None:
        if self._is_auth_record(id):
            self._http.auth_store.clear()

    def _save_auth(self, data: Any) -> RecordAuth:
        auth = RecordAuth.model_validate(data)
        self._http.auth_store.save(auth.token, auth.record)
        return auth

    def _mark_verified(self, verification_token: str) -> None:
        payload = decode_token_payload(verification_token)
        store = self._http.auth_store
        record = store.record
        if payload is None or record is None or record.get("verified"):
            return
        if record.id != payload.get("id") or record.collection_id != payload.get("collectionId"):
            return

        store.save(store.token, RecordModel.model_validate({**record.to_dict(), "verified": True}))

    def _impersonate_headers(self, headers: Mapping[str, str] | None) -> dict[str, str]:
        merged = dict(headers or {})
        token = self._http.auth_store.token
        if token:
            merged.setdefault("Authorization", token)
        return merged


class RecordsResource(_RecordsMixin, CrudResource[RecordModel]):
    """
    Records of a single collection (sync).

    Example:
        >>> users = pb.collection("users")
        >>> users.auth_with_password("test@example.com", "1234567890")
        >>> users.update(pb.auth_store.record.id, {"name": "New name"})
    """

    def __init__(
        self,
        http: HttpClient,
        collection: str,
        *,
        client_factory: Callable[[], PocketBase] | None = None,
    ) -> None:
        self._collection = collection
        self._client_factory = client_factory
        super().__init__(
            http,
            f"/api/collections/{encode_segment(collection)}/records",
            RecordModel,
            after_update=self._sync_after_update,
            after_delete=self._sync_after_delete,
        )

    def list_auth_methods(
        self,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> AuthMethodsList:
        params = dict(query or {})
        params["fields"] = AUTH_METHODS_FIELDS
        data = self._http.get(f"{self._collection_path}/auth-methods", query=params, headers=headers)
        return AuthMethodsList.model_validate(data or {})

    def auth_with_password(
        self,
        identity: str,
        password: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RecordAuth:
        """Authenticate with identity/password and store the result."""
        data = self._http.post(
            f"{self._collection_path}/auth-with-password",
            with_defaults(body, identity=identity, password=password),
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._save_auth(data)

    def auth_with_oauth2_code(
        self,
        provider: str,
        code: str,
        code_verifier: str,
        redirect_url: str,
        *,
        create_data: Mapping[str, Any] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RecordAuth:
        """Exchange an OAuth2 authorization code for an auth token."""
        data = self._http.post(
            f"{self._collection_path}/auth-with-oauth2",
            with_defaults(
                body,
                provider=provider,
                code=code,
                codeVerifier=code_verifier,
                redirectURL=redirect_url,
                createData=dict(create_data) if create_data else None,
            ),
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._save_auth(data)

    def auth_refresh(
        self,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RecordAuth:
        data = self._http.post(
            f"{self._collection_path}/auth-refresh",
            dict(body) if body else None,
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._save_auth(data)

    def request_otp(
        self,
        email: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> OTPResponse:
        data = self._http.post(
            f"{self._collection_path}/request-otp",
            with_defaults(body, email=email),
            query=query,
            headers=headers,
        )
        return OTPResponse.model_validate(data)

    def auth_with_otp(
        self,
        otp_id: str,
        password: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RecordAuth:
        data = self._http.post(
            f"{self._collection_path}/auth-with-otp",
            with_defaults(body, otpId=otp_id, password=password),
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._save_auth(data)

    def request_password_reset(
        self,
        email: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._http.post(
            f"{self._collection_path}/request-password-reset",
            with_defaults(body, email=email),
            query=query,
            headers=headers,
        )

    def confirm_password_reset(
        self,
        token: str,
        password: str,
        password_confirm: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._http.post(
            f"{self._collection_path}/confirm-password-reset",
            with_defaults(body, token=token, password=password, passwordConfirm=password_confirm),
            query=query,
            headers=headers,
        )

    def request_verification(
        self,
        email: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._http.post(
            f"{self._collection_path}/request-verification",
            with_defaults(body, email=email),
            query=query,
            headers=headers,
        )

    def confirm_verification(
        self,
        token: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Confirm an email verification; marks the stored record verified if it matches."""
        self._http.post(
            f"{self._collection_path}/confirm-verification",
            with_defaults(body, token=token),
            query=query,
            headers=headers,
        )
        self._mark_verified(token)

    def impersonate(
        self,
        record_id: str,
        duration: float = 0,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> PocketBase:
        """
        Authenticate as ``record_id`` and return a new client holding that auth.

        Requires superuser auth on the current client. A ``duration`` of 0
        uses the collection's default token duration.
        """
        if self._client_factory is None:
            raise ClientException("Impersonation needs a client factory.")

        client = self._client_factory()
        data = client.send(
            f"{self._collection_path}/impersonate/{encode_segment(record_id)}",
            "POST",
            body=with_defaults(body, duration=duration),
            query=build_query(query, expand=expand, fields=fields),
            headers=self._impersonate_headers(headers),
        )
        auth = RecordAuth.model_validate(data)
        client.auth_store.save(auth.token, auth.record)
        return client


class AsyncRecordsResource(_RecordsMixin, AsyncCrudResource[RecordModel]):
    """
    Records of a single collection (async).

    Example:
        >>> posts = pb.collection("posts")
        >>> unsubscribe = await posts.subscribe("*", lambda e: print(e.action, e.record.id))
        >>> await posts.create({"title": "Hello"})
        >>> await unsubscribe()
    """

    def __init__(
        self,
        http: AsyncHttpClient,
        collection: str,
        *,
        realtime: RealtimeService | None = None,
        client_factory: Callable[[], AsyncPocketBase] | None = None,
    ) -> None:
        self._collection = collection
        self._realtime = realtime
        self._client_factory = client_factory
        super().__init__(
            http,
            f"/api/collections/{encode_segment(collection)}/records",
            RecordModel,
            after_update=self._sync_after_update,
            after_delete=self._sync_after_delete,
        )

    # Realtime

    async def subscribe(
        self,
        topic: str,
        callback: RecordSubscriptionCallback,
        *,
        expand: str | None = None,
        filter: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> UnsubscribeFunc:
        """
        Subscribe to changes of ``topic`` ("*" or a record id).

        ``callback`` receives a :class:`RecordSubscriptionEvent` for every
        create/update/delete the server pushes.
        """

        def listener(message: SseMessage) -> None:
            callback(RecordSubscriptionEvent.model_validate(message.json_data() or {}))

        return await self._require_realtime().subscribe(
            f"{self._collection}/{topic}",
            listener,
            expand=expand,
            filter=filter,
            fields=fields,
            query=query,
            headers=headers,
        )

    async def unsubscribe(self, topic: str | None = None) -> None:
        """
        Remove the subscriptions of ``topic``, or of the whole collection when
        no topic is given.
        """
        realtime = self._require_realtime()
        if topic:
            await realtime.unsubscribe(f"{self._collection}/{topic}")
        else:
            await realtime.unsubscribe_by_prefix(f"{self._collection}/")

    def _require_realtime(self) -> RealtimeService:
        if self._realtime is None:
            raise ClientException("Realtime is not available for this resource.")
        return self._realtime

    # Auth

    async def list_auth_methods(
        self,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> AuthMethodsList:
        params = dict(query or {})
        params["fields"] = AUTH_METHODS_FIELDS
        data = await self._http.get(
            f"{self._collection_path}/auth-methods", query=params, headers=headers
        )
        return AuthMethodsList.model_validate(data or {})

    async def auth_with_password(
        self,
        identity: str,
        password: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RecordAuth:
        data = await self._http.post(
            f"{self._collection_path}/auth-with-password",
            with_defaults(body, identity=identity, password=password),
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._save_auth(data)

    async def auth_with_oauth2_code(
        self,
        provider: str,
        code: str,
        code_verifier: str,
        redirect_url: str,
        *,
        create_data: Mapping[str, Any] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RecordAuth:
        data = await self._http.post(
            f"{self._collection_path}/auth-with-oauth2",
            with_defaults(
                body,
                provider=provider,
                code=code,
                codeVerifier=code_verifier,
                redirectURL=redirect_url,
                createData=dict(create_data) if create_data else None,
            ),
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._save_auth(data)

    async def auth_with_oauth2(
        self,
        provider: str,
        url_callback: OAuth2UrlCallback,
        *,
        scopes: Sequence[str] | None = None,
        create_data: Mapping[str, Any] | None = None,
        expand: str | None = None,
        fields: str | None = None,
    ) -> RecordAuth:
        """
        Run the OAuth2 sign-in without custom redirects or deep links.

        Opens a one-off realtime subscription, hands the provider URL to
        ``url_callback`` (open it in a browser) and waits for the redirect
        page to send the authorization code back over the realtime
        connection. The subscription is always removed before returning.

        The OAuth2 app must use ``<base_url>/api/oauth2-redirect`` as its
        redirect URL.

        Example:
            >>> auth = await pb.collection("users").auth_with_oauth2("google", webbrowser.open)

        Raises:
            ClientException: If the provider is unknown, the state doesn't
                match, the provider reports an error or the code exchange fails
        """
        realtime = self._require_realtime()
        redirect_url = self._http.build_url(OAUTH2_REDIRECT_PATH)

        methods = await self.list_auth_methods()
        found = next((p for p in methods.oauth2.providers if p.name == provider), None)
        if found is None:
            raise ClientException(
                f"Missing or invalid provider {provider!r}.",
                url=self._http.build_url(f"{self._collection_path}/auth-methods"),
            )

        received: asyncio.Future[SseMessage] = asyncio.get_running_loop().create_future()

        def on_redirect(message: SseMessage) -> None:
            if not received.done():
                received.set_result(message)

        unsubscribe: UnsubscribeFunc | None = None
        try:
            unsubscribe = await realtime.subscribe(
                OAUTH2_TOPIC,
                on_redirect,
                expand=expand,
                fields=fields,
            )

            auth_url = build_oauth2_url(found.auth_url + redirect_url, realtime.client_id, scopes)
            opened = url_callback(auth_url)
            if inspect.isawaitable(opened):
                await opened

            payload = (await received).json_data()
            if not isinstance(payload, dict):
                payload = {}

            state = payload.get("state") or ""
            if not state or state != realtime.client_id:
                raise ClientException("State parameters don't match.", url=redirect_url)

            code = payload.get("code") or ""
            if payload.get("error") or not code:
                raise ClientException(
                    "OAuth2 redirect error or missing code.",
                    url=redirect_url,
                    original_error=payload.get("error"),
                )

            return await self.auth_with_oauth2_code(
                found.name,
                code,
                found.code_verifier,
                redirect_url,
                create_data=create_data,
                expand=expand,
                fields=fields,
            )
        except ClientException:
            raise
        except Exception as e:
            raise ClientException(url=redirect_url, original_error=e) from e
        finally:
            if unsubscribe is not None:
                await unsubscribe()

    async def auth_refresh(
        self,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RecordAuth:
        data = await self._http.post(
            f"{self._collection_path}/auth-refresh",
            dict(body) if body else None,
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._save_auth(data)

    async def request_otp(
        self,
        email: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> OTPResponse:
        data = await self._http.post(
            f"{self._collection_path}/request-otp",
            with_defaults(body, email=email),
            query=query,
            headers=headers,
        )
        return OTPResponse.model_validate(data)

    async def auth_with_otp(
        self,
        otp_id: str,
        password: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RecordAuth:
        data = await self._http.post(
            f"{self._collection_path}/auth-with-otp",
            with_defaults(body, otpId=otp_id, password=password),
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._save_auth(data)

    async def request_password_reset(
        self,
        email: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self._http.post(
            f"{self._collection_path}/request-password-reset",
            with_defaults(body, email=email),
            query=query,
            headers=headers,
        )

    async def confirm_password_reset(
        self,
        token: str,
        password: str,
        password_confirm: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self._http.post(
            f"{self._collection_path}/confirm-password-reset",
            with_defaults(body, token=token, password=password, passwordConfirm=password_confirm),
            query=query,
            headers=headers,
        )

    async def request_verification(
        self,
        email: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self._http.post(
            f"{self._collection_path}/request-verification",
            with_defaults(body, email=email),
            query=query,
            headers=headers,
        )

    async def confirm_verification(
        self,
        token: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self._http.post(
            f"{self._collection_path}/confirm-verification",
            with_defaults(body, token=token),
            query=query,
            headers=headers,
        )
        self._mark_verified(token)

    async def impersonate(
        self,
        record_id: str,
        duration: float = 0,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncPocketBase:
        """Authenticate as ``record_id`` and return a new client holding that auth."""
        if self._client_factory is None:
            raise ClientException("Impersonation needs a client factory.")

        client = self._client_factory()
        data = await client.send(
            f"{self._collection_path}/impersonate/{encode_segment(record_id)}",
            "POST",
            body=with_defaults(body, duration=duration),
            query=build_query(query, expand=expand, fields=fields),
            headers=self._impersonate_headers(headers),
        )
        auth = RecordAuth.model_validate(data)
        client.auth_store.save(auth.token, auth.record)
        return client
