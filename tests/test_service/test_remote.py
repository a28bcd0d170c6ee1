"""
Tests for the HTTP repository against a mocked backend.
"""

import json

import httpx
import pytest
import respx

from siscodex.core.models import LocalizedTexts, PlantTexts
from siscodex.core.term import TermData
from siscodex.service.remote import RemoteError, RemoteRepository

BASE = "https://recodex.example.org/api/v1"

TEXTS = PlantTexts(
    cs=LocalizedTexts(name="2024/25 1-ZS", description="Zimní semestr 2024/25"),
    en=LocalizedTexts(name="2024/25 1-Winter", description="Winter term 2024/25"),
)


@pytest.mark.asyncio(loop_scope="session")
@respx.mock
async def test_fetch_all(logger):
    route = respx.get(f"{BASE}/groups/all").mock(
        return_value=httpx.Response(
            200,
            json={
                "success": True,
                "payload": {
                    "g1": {
                        "id": "g1",
                        "parentGroupId": None,
                        "name": {"en": "Root"},
                        "membership": "none",
                        "attributes": [],
                    },
                    "g2": {
                        "id": "g2",
                        "parentGroupId": "g1",
                        "name": {"en": "Course"},
                        "membership": "admin",
                        "organizational": True,
                        "attributes": {"course": ["NPRG013"]},
                    },
                },
            },
        )
    )

    async with RemoteRepository(base_url=BASE, token="secret") as repository:
        groups = await repository.fetch_all(log=logger)

    assert route.called
    assert route.calls.last.request.headers["Authorization"] == "Bearer secret"
    assert [group.id for group in groups] == ["g1", "g2"]
    assert groups[0].membership is None
    assert groups[0].attributes == {}
    assert groups[1].parent_id == "g1"
    assert groups[1].attributes == {"course": ["NPRG013"]}


@pytest.mark.asyncio(loop_scope="session")
@respx.mock
async def test_create_term_group(logger):
    route = respx.post(f"{BASE}/groups/g2/create-term/2024-1").mock(
        return_value=httpx.Response(
            200,
            json={
                "payload": {
                    "id": "g3",
                    "parentGroupId": "g2",
                    "name": {"en": "2024/25 1-Winter"},
                    "attributes": {"term": ["2024-1"]},
                }
            },
        )
    )

    async with RemoteRepository(base_url=BASE) as repository:
        group = await repository.create_term_group(
            parent_id="g2",
            term_key="2024-1",
            texts=TEXTS,
            log=logger,
            idempotency_key="abc",
        )

    request = route.calls.last.request
    assert request.headers["Idempotency-Key"] == "abc"
    assert "Authorization" not in request.headers
    assert json.loads(request.content)["en"]["name"] == "2024/25 1-Winter"
    assert group.id == "g3"
    assert group.attributes == {"term": ["2024-1"]}


@pytest.mark.asyncio(loop_scope="session")
@respx.mock
async def test_mutations(logger):
    archived = respx.post(f"{BASE}/groups/g2/archived").mock(
        return_value=httpx.Response(200, json={"payload": None})
    )
    added = respx.post(f"{BASE}/groups/g2/attribute").mock(
        return_value=httpx.Response(200, json={"payload": "OK"})
    )
    removed = respx.delete(f"{BASE}/groups/g2/attribute").mock(
        return_value=httpx.Response(204)
    )

    async with RemoteRepository(base_url=BASE) as repository:
        await repository.set_archived(group_id="g2", archived=True, log=logger)
        await repository.add_attribute(
            group_id="g2", key="room", value="S3", log=logger
        )
        await repository.remove_attribute(
            group_id="g2", key="room", value="S3", log=logger
        )

    assert json.loads(archived.calls.last.request.content) == {"value": True}
    assert json.loads(added.calls.last.request.content) == {
        "key": "room",
        "value": "S3",
    }
    assert removed.calls.last.request.url.params["key"] == "room"
    assert removed.calls.last.request.url.params["value"] == "S3"


@pytest.mark.asyncio(loop_scope="session")
@respx.mock
async def test_fetch_all_terms(logger):
    respx.get(f"{BASE}/terms").mock(
        return_value=httpx.Response(
            200,
            json={
                "payload": [
                    {"id": "t1", "year": 2024, "term": 1, "archiveAfter": 1756677600},
                    {"id": "t2", "year": 2024, "term": 2},
                ]
            },
        )
    )

    async with RemoteRepository(base_url=BASE) as repository:
        terms = await repository.fetch_all_terms(log=logger)

    assert [term.key for term in terms] == ["2024-1", "2024-2"]
    assert terms[0].archive_after == 1756677600


@pytest.mark.asyncio(loop_scope="session")
@respx.mock
async def test_error_message(logger):
    respx.post(f"{BASE}/groups/g2/create-term/2024-1").mock(
        return_value=httpx.Response(
            409, json={"success": False, "error": {"message": "conflict"}}
        )
    )
    respx.post(f"{BASE}/groups/g2/archived").mock(
        return_value=httpx.Response(500, text="Internal error")
    )

    async with RemoteRepository(base_url=BASE) as repository:
        with pytest.raises(RemoteError) as excinfo:
            await repository.create_term_group(
                parent_id="g2", term_key="2024-1", texts=TEXTS, log=logger
            )

        assert str(excinfo.value) == "conflict"
        assert excinfo.value.status_code == 409

        with pytest.raises(RemoteError) as excinfo:
            await repository.set_archived(group_id="g2", archived=True, log=logger)

        assert str(excinfo.value) == "Internal error"


@pytest.mark.asyncio(loop_scope="session")
@respx.mock
async def test_transport_error(logger):
    respx.get(f"{BASE}/groups/all").mock(side_effect=httpx.ConnectError("refused"))

    async with RemoteRepository(base_url=BASE) as repository:
        with pytest.raises(RemoteError) as excinfo:
            await repository.fetch_all(log=logger)

    assert excinfo.value.status_code is None


@pytest.mark.asyncio(loop_scope="session")
@respx.mock
async def test_bind_unbind_join(logger):
    bound = respx.post(f"{BASE}/groups/g2/bind/X1").mock(
        return_value=httpx.Response(200, json={"payload": "OK"})
    )
    unbound = respx.delete(f"{BASE}/groups/g2/bind/X1").mock(
        return_value=httpx.Response(200, json={"payload": "OK"})
    )
    joined = respx.post(f"{BASE}/groups/g2/join").mock(
        return_value=httpx.Response(200, json={"payload": "OK"})
    )

    async with RemoteRepository(base_url=BASE) as repository:
        await repository.bind_group(group_id="g2", event_id="X1", log=logger)
        await repository.unbind_group(group_id="g2", event_id="X1", log=logger)
        await repository.join_group(group_id="g2", log=logger)

    assert bound.call_count == 1
    assert unbound.call_count == 1
    assert joined.call_count == 1


@pytest.mark.asyncio(loop_scope="session")
@respx.mock
async def test_term_changes(logger):
    term = TermData(id="ignored", year=2025, term=1, archive_after=1788213600)

    created = respx.post(f"{BASE}/terms").mock(
        return_value=httpx.Response(
            200, json={"payload": {"id": "t9", "year": 2025, "term": 1}}
        )
    )
    updated = respx.post(f"{BASE}/terms/t9").mock(
        return_value=httpx.Response(
            200,
            json={
                "payload": {
                    "id": "t9",
                    "year": 2025,
                    "term": 1,
                    "archiveAfter": 1788213600,
                }
            },
        )
    )
    deleted = respx.delete(f"{BASE}/terms/t9").mock(
        return_value=httpx.Response(200, json={"payload": "OK"})
    )

    async with RemoteRepository(base_url=BASE) as repository:
        result = await repository.create_term(term=term, log=logger)
        assert result.id == "t9"

        result = await repository.update_term(term_id="t9", term=term, log=logger)
        assert result.archive_after == 1788213600

        await repository.delete_term(term_id="t9", log=logger)

    body = json.loads(created.calls.last.request.content)
    assert "id" not in body
    assert body["archiveAfter"] == 1788213600
    assert json.loads(updated.calls.last.request.content)["year"] == 2025
    assert deleted.called
