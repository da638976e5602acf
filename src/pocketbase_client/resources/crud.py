"""
Generic CRUD resource.

One parametric implementation serves every list/view/create/update/delete
endpoint; it is configured with the base path and the model the responses
are parsed into. Resource specific follow-up work (e.g. keeping the auth
store in sync) is plugged in through the ``after_update`` and
``after_delete`` hooks.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel

from pocketbase_client.errors import ClientException, create_error_from_response
from pocketbase_client.resources.base import AsyncBaseResource, BaseResource
from pocketbase_client.types.records import ResultList
from pocketbase_client.utils.url import encode_segment, set_default

if TYPE_CHECKING:
    from pocketbase_client.utils.async_http import AsyncHttpClient
    from pocketbase_client.utils.http import FilePart, HttpClient

ModelT = TypeVar("ModelT", bound=BaseModel)

AfterUpdateHook = Callable[[Any], None]
AfterDeleteHook = Callable[[str], None]


def build_query(query: Mapping[str, Any] | None = None, **params: Any) -> dict[str, Any]:
    """Copy ``query`` and add every non-blank keyword not already present."""
    merged = dict(query or {})
    for key, value in params.items():
        set_default(merged, key, value)
    return merged


class _CrudMixin(Generic[ModelT]):
    """Path building and response parsing shared by the sync and async resources."""

    _base_path: str
    _model: type[ModelT]
    _http: Any

    @property
    def base_path(self) -> str:
        return self._base_path

    def _item_path(self, id: str) -> str:
        return f"{self._base_path}/{encode_segment(id)}"

    def _list_query(
        self,
        page: int,
        per_page: int,
        skip_total: bool,
        expand: str | None,
        filter: str | None,
        sort: str | None,
        fields: str | None,
        query: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        params = dict(query or {})
        params.setdefault("page", page)
        params.setdefault("perPage", per_page)
        params.setdefault("skipTotal", skip_total)
        return build_query(params, expand=expand, filter=filter, sort=sort, fields=fields)

    def _parse(self, data: Any) -> ModelT:
        return self._model.model_validate(data or {})

    def _parse_list(self, data: Any) -> ResultList[ModelT]:
        return ResultList[self._model].model_validate(data or {})

    def _missing_id_error(self) -> ClientException:
        return create_error_from_response(
            404,
            {"code": 404, "message": "Missing required record id.", "data": {}},
            url=self._http.build_url(f"{self._base_path}/"),
        )

    def _not_found_error(self) -> ClientException:
        return create_error_from_response(
            404,
            {"code": 404, "message": "The requested resource wasn't found.", "data": {}},
            url=self._http.build_url(f"{self._base_path}/"),
        )


class CrudResource(_CrudMixin[ModelT], BaseResource):
    """
    CRUD resource (sync).

    Example:
        >>> posts = CrudResource(http, "/api/collections/posts/records", RecordModel)
        >>> page = posts.get_list(1, 20, filter="published = true")
        >>> post = posts.get_one(page.items[0].id, expand="author")
    """

    def __init__(
        self,
        http: HttpClient,
        base_path: str,
        model: type[ModelT],
        *,
        after_update: AfterUpdateHook | None = None,
        after_delete: AfterDeleteHook | None = None,
    ) -> None:
        super().__init__(http)
        self._base_path = base_path
        self._model = model
        self._after_update = after_update
        self._after_delete = after_delete

    def get_full_list(
        self,
        batch: int = 500,
        *,
        expand: str | None = None,
        filter: str | None = None,
        sort: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[ModelT]:
        """Fetch every item by walking the pages ``batch`` items at a time."""
        if batch <= 0:
            raise ValueError("batch must be a positive number")

        items: list[ModelT] = []
        page = 1
        while True:
            result = self.get_list(
                page,
                batch,
                skip_total=True,
                expand=expand,
                filter=filter,
                sort=sort,
                fields=fields,
                query=query,
                headers=headers,
            )
            items.extend(result.items)
            if len(result.items) < batch:
                return items
            page += 1

    def get_list(
        self,
        page: int = 1,
        per_page: int = 30,
        *,
        skip_total: bool = False,
        expand: str | None = None,
        filter: str | None = None,
        sort: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ResultList[ModelT]:
        """Fetch a single page."""
        params = self._list_query(page, per_page, skip_total, expand, filter, sort, fields, query)
        data = self._http.get(self._base_path, query=params, headers=headers)
        return self._parse_list(data)

    def get_one(
        self,
        id: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ModelT:
        """
        Fetch a single item by id.

        Raises:
            NotFoundError: If ``id`` is blank (no request is made) or unknown
        """
        if not id or not id.strip():
            raise self._missing_id_error()

        data = self._http.get(
            self._item_path(id),
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._parse(data)

    def get_first_list_item(
        self,
        filter: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ModelT:
        """
        Fetch the first item matching ``filter``.

        Raises:
            NotFoundError: If nothing matches
        """
        result = self.get_list(
            1,
            1,
            skip_total=True,
            expand=expand,
            filter=filter,
            fields=fields,
            query=query,
            headers=headers,
        )
        if not result.items:
            raise self._not_found_error()
        return result.items[0]

    def create(
        self,
        body: Any = None,
        *,
        files: Sequence[FilePart] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ModelT:
        data = self._http.post(
            self._base_path,
            body,
            query=build_query(query, expand=expand, fields=fields),
            files=files,
            headers=headers,
        )
        return self._parse(data)

    def update(
        self,
        id: str,
        body: Any = None,
        *,
        files: Sequence[FilePart] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ModelT:
        data = self._http.patch(
            self._item_path(id),
            body,
            query=build_query(query, expand=expand, fields=fields),
            files=files,
            headers=headers,
        )
        item = self._parse(data)
        if self._after_update is not None:
            self._after_update(item)
        return item

    def delete(
        self,
        id: str,
        body: Any = None,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._http.delete(self._item_path(id), body, query=query, headers=headers)
        if self._after_delete is not None:
            self._after_delete(id)


class AsyncCrudResource(_CrudMixin[ModelT], AsyncBaseResource):
    """CRUD resource (async)."""

    def __init__(
        self,
        http: AsyncHttpClient,
        base_path: str,
        model: type[ModelT],
        *,
        after_update: AfterUpdateHook | None = None,
        after_delete: AfterDeleteHook | None = None,
    ) -> None:
        super().__init__(http)
        self._base_path = base_path
        self._model = model
        self._after_update = after_update
        self._after_delete = after_delete

    async def get_full_list(
        self,
        batch: int = 500,
        *,
        expand: str | None = None,
        filter: str | None = None,
        sort: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[ModelT]:
        """Fetch every item by walking the pages ``batch`` items at a time."""
        if batch <= 0:
            raise ValueError("batch must be a positive number")

        items: list[ModelT] = []
        page = 1
        while True:
            result = await self.get_list(
                page,
                batch,
                skip_total=True,
                expand=expand,
                filter=filter,
                sort=sort,
                fields=fields,
                query=query,
                headers=headers,
            )
            items.extend(result.items)
            if len(result.items) < batch:
                return items
            page += 1

    async def get_list(
        self,
        page: int = 1,
        per_page: int = 30,
        *,
        skip_total: bool = False,
        expand: str | None = None,
        filter: str | None = None,
        sort: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ResultList[ModelT]:
        """Fetch a single page."""
        params = self._list_query(page, per_page, skip_total, expand, filter, sort, fields, query)
        data = await self._http.get(self._base_path, query=params, headers=headers)
        return self._parse_list(data)

    async def get_one(
        self,
        id: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ModelT:
        """Fetch a single item by id."""
        if not id or not id.strip():
            raise self._missing_id_error()

        data = await self._http.get(
            self._item_path(id),
            query=build_query(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._parse(data)

    async def get_first_list_item(
        self,
        filter: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ModelT:
        """Fetch the first item matching ``filter``."""
        result = await self.get_list(
            1,
            1,
            skip_total=True,
            expand=expand,
            filter=filter,
            fields=fields,
            query=query,
            headers=headers,
        )
        if not result.items:
            raise self._not_found_error()
        return result.items[0]

    async def create(
        self,
        body: Any = None,
        *,
        files: Sequence[FilePart] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ModelT:
        data = await self._http.post(
            self._base_path,
            body,
            query=build_query(query, expand=expand, fields=fields),
            files=files,
            headers=headers,
        )
        return self._parse(data)

    async def update(
        self,
        id: str,
        body: Any = None,
        *,
        files: Sequence[FilePart] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ModelT:
        data = await self._http.patch(
            self._item_path(id),
            body,
            query=build_query(query, expand=expand, fields=fields),
            files=files,
            headers=headers,
        )
        item = self._parse(data)
        if self._after_update is not None:
            self._after_update(item)
        return item

    async def delete(
        self,
        id: str,
        body: Any = None,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self._http.delete(self._item_path(id), body, query=query, headers=headers)
        if self._after_delete is not None:
            self._after_delete(id)
