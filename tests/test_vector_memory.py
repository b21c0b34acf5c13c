from __future__ import annotations

import pytest

from vecstore.core.config import StoreConfig
from vecstore.core.exceptions import DimensionMismatchError, InvalidInputError, NotFoundError
from vecstore.integrations.vector.memory import InMemoryVectorStore, matches_filters


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore(StoreConfig(index_name="mem", dimension=2))


async def _seed_products(store: InMemoryVectorStore) -> None:
    await store.insert(
        [[1.0, 0.0], [0.9, 0.1], [0.0, 1.0], [0.5, 0.5]],
        ["chair", "stool", "lamp", "desk"],
        [
            {"category": "seating", "price": 120, "meta": {"color": "oak"}},
            {"category": "seating", "price": 40},
            {"category": "lighting", "price": 60},
            {"category": "tables", "price": 300},
        ],
    )


@pytest.mark.unit
@pytest.mark.parametrize(
    ("filters", "expected"),
    [
        (None, True),
        ({}, True),
        ({"category": "seating"}, True),
        ({"category": "lighting"}, False),
        ({"price": {"$gte": 100, "$lt": 200}}, True),
        ({"price": {"$gt": 120}}, False),
        ({"price": {"$lte": 120}}, True),
        ({"category": {"$in": ["seating", "tables"]}}, True),
        ({"category": {"$nin": ["seating"]}}, False),
        ({"category": {"$ne": "tables"}}, True),
        ({"missing": {"$ne": "x"}}, True),
        ({"missing": {"$gt": 1}}, False),
        ({"missing": "x"}, False),
        ({"meta.color": "oak"}, True),
        ({"price": {"$gt": "cheap"}}, False),
    ],
)
def test_matches_filters(filters: dict | None, expected: bool) -> None:
    metadata = {"category": "seating", "price": 120, "meta": {"color": "oak"}}
    assert matches_filters(metadata, filters) is expected


@pytest.mark.unit
def test_unknown_filter_operator_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        matches_filters({"price": 1}, {"price": {"$regex": "1"}})


@pytest.mark.unit
@pytest.mark.parametrize("condition", [{"$in": "seating"}, {"$nin": 5}, {"$in": {"seating": 1}}])
def test_membership_operator_requires_list(condition: dict) -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        matches_filters({"category": "seating"}, {"category": condition})

    assert exc_info.value.operation == "search"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_reports_bad_filter_as_list_error(memory_store: InMemoryVectorStore) -> None:
    await _seed_products(memory_store)

    with pytest.raises(InvalidInputError) as exc_info:
        await memory_store.list(filters={"category": {"$in": "seating"}})

    assert exc_info.value.operation == "list"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_search_applies_range_filter(memory_store: InMemoryVectorStore) -> None:
    await _seed_products(memory_store)

    results = await memory_store.search([1.0, 0.0], limit=5, filters={"price": {"$lt": 100}})

    assert [r.id for r in results] == ["stool", "lamp"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_euclidean_scores_are_ascending_distances() -> None:
    store = InMemoryVectorStore(StoreConfig(index_name="mem", dimension=2, metric="euclidean"))
    await _seed_products(store)

    results = await store.search([1.0, 0.0], limit=2)

    assert [r.id for r in results] == ["chair", "stool"]
    assert results[0].score == 0.0
    assert results[0].score <= results[1].score


@pytest.mark.unit
@pytest.mark.asyncio
async def test_dot_product_ranking() -> None:
    store = InMemoryVectorStore(StoreConfig(index_name="mem", dimension=2, metric="dot-product"))
    await store.insert([[1.0, 1.0], [3.0, 3.0]], ["small", "large"], [{}, {}])

    results = await store.search([1.0, 1.0], limit=2)

    assert [r.id for r in results] == ["large", "small"]
    assert results[0].score == 6.0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_replaces_existing(memory_store: InMemoryVectorStore) -> None:
    await _seed_products(memory_store)

    await memory_store.update("lamp", [1.0, 0.0], {"category": "lighting", "price": 55})

    result = await memory_store.get("lamp")
    assert result is not None
    assert result.payload["price"] == 55
    assert (await memory_store.search([1.0, 0.0], limit=1))[0].id in {"chair", "lamp"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_missing_raises_not_found(memory_store: InMemoryVectorStore) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await memory_store.update("ghost", [1.0, 0.0], {})

    assert exc_info.value.vector_id == "ghost"
    assert isinstance(exc_info.value, LookupError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_validates_dimension(memory_store: InMemoryVectorStore) -> None:
    await _seed_products(memory_store)

    with pytest.raises(DimensionMismatchError):
        await memory_store.update("lamp", [1.0], {})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_returns_page_and_total(memory_store: InMemoryVectorStore) -> None:
    await _seed_products(memory_store)

    page, total = await memory_store.list(limit=2)
    assert [r.id for r in page] == ["chair", "desk"]
    assert total == 4

    page, total = await memory_store.list(filters={"category": "seating"}, limit=10)
    assert [r.id for r in page] == ["chair", "stool"]
    assert total == 2
    assert all(r.score is None for r in page)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_rejects_bad_limit(memory_store: InMemoryVectorStore) -> None:
    with pytest.raises(InvalidInputError):
        await memory_store.list(limit=0)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_user_id_partitions_records(memory_store: InMemoryVectorStore) -> None:
    assert await memory_store.get_user_id() is None

    await memory_store.set_user_id("alice")
    await memory_store.insert([[1.0, 0.0]], ["note"], [{"owner": "alice"}])

    await memory_store.set_user_id("bob")
    assert await memory_store.get_user_id() == "bob"
    assert await memory_store.get("note") is None
    assert await memory_store.search([1.0, 0.0], limit=3) == []

    await memory_store.set_user_id("alice")
    result = await memory_store.get("note")
    assert result is not None
    assert result.payload == {"owner": "alice"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_collection_drops_everything(memory_store: InMemoryVectorStore) -> None:
    await _seed_products(memory_store)
    await memory_store.set_user_id("alice")
    await memory_store.insert([[1.0, 0.0]], ["note"], [{}])

    await memory_store.delete_collection()

    assert await memory_store.get("note") is None
    await memory_store.set_user_id(None)
    assert await memory_store.list() == ([], 0)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_returned_payload_is_a_copy(memory_store: InMemoryVectorStore) -> None:
    await _seed_products(memory_store)

    result = await memory_store.get("desk")
    assert result is not None
    result.payload["price"] = 0

    again = await memory_store.get("desk")
    assert again is not None
    assert again.payload["price"] == 300


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reads_for_unknown_user_leave_partitions_untouched(memory_store: InMemoryVectorStore) -> None:
    await _seed_products(memory_store)
    partitions = set(memory_store._partitions)

    for i in range(50):
        await memory_store.set_user_id(f"visitor-{i}")
        assert await memory_store.get("chair") is None
        assert await memory_store.search([1.0, 0.0]) == []
        assert await memory_store.list() == ([], 0)
        await memory_store.delete("chair")

    assert set(memory_store._partitions) == partitions

    await memory_store.insert([[1.0, 0.0]], ["note"], [{}])
    assert "visitor-49" in memory_store._partitions
