"""
Group and term repository backed by the SIS-CodEx backend API, wraps around
httpx.
"""

from json import JSONDecodeError
from typing import Any

import httpx
from structlog.typing import FilteringBoundLogger

from siscodex.core.group import GroupData
from siscodex.core.models import PlantTexts
from siscodex.core.term import TermData

from .repository import GroupRepository, TermRepository


class RemoteError(Exception):
    """
    A request to the backend failed. The message is the one reported by the
    server where available.
    """

    status_code: int | None

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TokenAuth(httpx.Auth):
    """
    Bearer token authentication for httpx.
    """

    token: str

    def __init__(self, token: str):
        self.token = token

    def auth_flow(self, request):
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request


def error_message(response: httpx.Response) -> str:
    """
    Extract the error message from a failed response. The backend reports
    errors as `{"error": {"message": ...}}`.
    """
    try:
        content = response.json()
    except JSONDecodeError:
        content = None

    if isinstance(content, dict):
        error = content.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error

    return response.text or f"HTTP {response.status_code}"


def term_body(term: TermData) -> dict[str, Any]:
    # The id travels in the URL
    return term.model_dump(by_alias=True, exclude={"id"})


def _items(payload: Any) -> list[Any]:
    # Collections may come either as lists or as objects keyed by id
    if isinstance(payload, dict):
        return list(payload.values())
    return list(payload or [])


class RemoteRepository(GroupRepository, TermRepository):
    """
    Talks to the backend over HTTP. Use as an async context manager, or call
    `aclose` when done.
    """

    base_url: str

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Parameters
        ----------
        base_url: str
            The URL of the API itself; all paths are relative to it.
        token: str | None, optional
            Bearer token of the acting user.
        timeout: float, optional
            Timeout for every request, in seconds.
        transport: httpx.AsyncBaseTransport | None, optional
            Custom transport, mainly for testing.
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=TokenAuth(token) if token else None,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "RemoteRepository":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(
        self, method: str, url: str, log: FilteringBoundLogger, **kwargs
    ) -> Any:
        log = log.bind(method=method, url=url)

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            await log.awarning("remote.transport_error", error=str(e))
            raise RemoteError(f"Could not contact the backend: {e}") from e

        if response.status_code >= 400:
            message = error_message(response)
            await log.awarning(
                "remote.request_failed",
                status_code=response.status_code,
                message=message,
            )
            raise RemoteError(message, status_code=response.status_code)

        await log.adebug("remote.request_succeeded", status_code=response.status_code)

        if not response.content:
            return None

        try:
            content = response.json()
        except JSONDecodeError:
            return None

        if isinstance(content, dict) and "payload" in content:
            return content["payload"]
        return content

    async def fetch_all(self, log: FilteringBoundLogger) -> list[GroupData]:
        payload = await self._request("GET", "/groups/all", log=log)
        groups = [GroupData.model_validate(item) for item in _items(payload)]
        await log.adebug("remote.groups_fetched", number_of_groups=len(groups))
        return groups

    async def create_term_group(
        self,
        parent_id: str,
        term_key: str,
        texts: PlantTexts,
        log: FilteringBoundLogger,
        idempotency_key: str | None = None,
    ) -> GroupData:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
        payload = await self._request(
            "POST",
            f"/groups/{parent_id}/create-term/{term_key}",
            log=log.bind(parent_id=parent_id, term_key=term_key),
            json=texts.model_dump(),
            headers=headers,
        )
        return GroupData.model_validate(payload)

    async def set_archived(
        self, group_id: str, archived: bool, log: FilteringBoundLogger
    ) -> None:
        await self._request(
            "POST",
            f"/groups/{group_id}/archived",
            log=log.bind(group_id=group_id),
            json={"value": archived},
        )

    async def add_attribute(
        self, group_id: str, key: str, value: str, log: FilteringBoundLogger
    ) -> None:
        await self._request(
            "POST",
            f"/groups/{group_id}/attribute",
            log=log.bind(group_id=group_id, key=key),
            json={"key": key, "value": value},
        )

    async def remove_attribute(
        self, group_id: str, key: str, value: str, log: FilteringBoundLogger
    ) -> None:
        await self._request(
            "DELETE",
            f"/groups/{group_id}/attribute",
            log=log.bind(group_id=group_id, key=key),
            params={"key": key, "value": value},
        )

    async def fetch_all_terms(self, log: FilteringBoundLogger) -> list[TermData]:
        payload = await self._request("GET", "/terms", log=log)
        return [TermData.model_validate(item) for item in _items(payload)]

    async def bind_group(
        self, group_id: str, event_id: str, log: FilteringBoundLogger
    ) -> None:
        await self._request(
            "POST",
            f"/groups/{group_id}/bind/{event_id}",
            log=log.bind(group_id=group_id, event_id=event_id),
        )

    async def unbind_group(
        self, group_id: str, event_id: str, log: FilteringBoundLogger
    ) -> None:
        await self._request(
            "DELETE",
            f"/groups/{group_id}/bind/{event_id}",
            log=log.bind(group_id=group_id, event_id=event_id),
        )

    async def join_group(self, group_id: str, log: FilteringBoundLogger) -> None:
        await self._request(
            "POST", f"/groups/{group_id}/join", log=log.bind(group_id=group_id)
        )

    async def create_term(self, term: TermData, log: FilteringBoundLogger) -> TermData:
        payload = await self._request(
            "POST",
            "/terms",
            log=log.bind(term_key=term.key),
            json=term_body(term),
        )
        return TermData.model_validate(payload)

    async def update_term(
        self, term_id: str, term: TermData, log: FilteringBoundLogger
    ) -> TermData:
        payload = await self._request(
            "POST",
            f"/terms/{term_id}",
            log=log.bind(term_id=term_id, term_key=term.key),
            json=term_body(term),
        )
        return TermData.model_validate(payload)

    async def delete_term(self, term_id: str, log: FilteringBoundLogger) -> None:
        await self._request("DELETE", f"/terms/{term_id}", log=log.bind(term_id=term_id))
