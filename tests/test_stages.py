"""Tests for index stage state tracking."""

import pytest

pytest_plugins = ("pytest_asyncio",)

from docmigrate.stages import IndexStageState, StageStateStore

COLLECTION = "fulltext_stage_state"


class Ticker:
    """Millisecond clock that advances by one second per call."""

    def __init__(self):
        self.now = 1_700_000_000_000

    def __call__(self):
        self.now += 1000
        return self.now


@pytest.fixture
def stages(store):
    return StageStateStore(store, clock=Ticker())


class TestLoadIndexStageState:
    """Test version bumps on tracked field changes."""

    @pytest.mark.asyncio
    async def test_version_sequence(self, stages, store):
        """Test 5 -> '1', 5 -> '1', 7 -> '2'."""
        result, state = await stages.load_index_stage_state("stage-1", "version", 5)
        assert result == "1"
        assert state.attributes == {"version": 5, "index": 1}

        result, state = await stages.load_index_stage_state("stage-1", "version", 5)
        assert result == "1"
        assert state.index == 1

        result, state = await stages.load_index_stage_state("stage-1", "version", 7)
        assert result == "2"
        assert state.attributes == {"version": 7, "index": 2}

        records = await store.find(COLLECTION, {"stageId": "stage-1"})
        assert len(records) == 1
        assert records[0]["attributes"] == {"version": 7, "index": 2}

    @pytest.mark.asyncio
    async def test_unchanged_value_never_bumps(self, stages, store):
        """Test that structurally equal values never bump the index."""
        value = {"fields": ["title", "description"], "model": {"name": "m", "dim": 384}}
        await stages.load_index_stage_state("embed", "config", value)

        for _ in range(5):
            same = {"model": {"dim": 384, "name": "m"}, "fields": ("title", "description")}
            result, _ = await stages.load_index_stage_state("embed", "config", same)
            assert result == "1"

        records = await store.find(COLLECTION, {"stageId": "embed"})
        assert records[0]["attributes"]["index"] == 1

    @pytest.mark.asyncio
    async def test_order_change_in_sequence_bumps(self, stages):
        """Test that reordering a list is a change."""
        await stages.load_index_stage_state("embed", "fields", ["title", "body"])

        result, _ = await stages.load_index_stage_state("embed", "fields", ["body", "title"])

        assert result == "2"

    @pytest.mark.asyncio
    async def test_unknown_value_always_recomputes(self, stages):
        """Test that values outside the model always bump."""
        marker = object()
        await stages.load_index_stage_state("opaque", "value", marker)

        result, _ = await stages.load_index_stage_state("opaque", "value", marker)

        assert result == "2"

    @pytest.mark.asyncio
    async def test_no_version_yet_returns_true(self, stages, store):
        """Test that an unversioned, unchanged stage returns True."""
        result, state = await stages.load_index_stage_state("fresh", "version", None)

        assert result is True
        assert state is None
        assert await store.find(COLLECTION, {}) == []

    @pytest.mark.asyncio
    async def test_cached_state_skips_lookup(self, stages, store):
        """Test that a passed state skips the store lookup."""
        _, state = await stages.load_index_stage_state("stage-1", "version", 5)
        await store.delete_many(COLLECTION, {})

        result, same = await stages.load_index_stage_state("stage-1", "version", 5, state)

        assert result == "1"
        assert same is state

    @pytest.mark.asyncio
    async def test_caller_mutation_does_not_leak_into_state(self, stages):
        """Test that mutating a passed value after the call still bumps the index."""
        fields = ["title"]
        _, state = await stages.load_index_stage_state("embed", "fields", fields)

        fields.append("body")
        result, state = await stages.load_index_stage_state("embed", "fields", fields, state)

        assert result == "2"
        assert state.attributes["fields"] == ["title", "body"]

    @pytest.mark.asyncio
    async def test_fields_tracked_independently(self, stages):
        """Test that fields of one stage share the index."""
        _, state = await stages.load_index_stage_state("stage-1", "version", 5)
        result, state = await stages.load_index_stage_state("stage-1", "model", "mini", state)
        assert result == "2"
        assert state.attributes == {"version": 5, "model": "mini", "index": 2}

        result, _ = await stages.load_index_stage_state("stage-1", "version", 5)
        assert result == "2"

    @pytest.mark.asyncio
    async def test_modified_on_refreshed(self, stages, store):
        """Test that modifiedOn is refreshed on change."""
        _, first = await stages.load_index_stage_state("stage-1", "version", 1)
        _, second = await stages.load_index_stage_state("stage-1", "version", 2)

        assert second.modified_on > first.modified_on
        records = await store.find(COLLECTION, {"stageId": "stage-1"})
        assert records[0]["modifiedOn"] == second.modified_on

    @pytest.mark.asyncio
    async def test_duplicate_records_use_first(self, stages, store, caplog):
        """Test that the first of duplicate records is used."""
        await store.insert_many(
            COLLECTION,
            [
                {"_id": "a", "stageId": "dup", "attributes": {"version": 1, "index": 4}},
                {"_id": "b", "stageId": "dup", "attributes": {"version": 9, "index": 9}},
            ],
        )

        result, state = await stages.load_index_stage_state("dup", "version", 1)

        assert result == "4"
        assert state.id == "a"
        assert "Multiple state records" in caplog.text

    @pytest.mark.asyncio
    async def test_stages_isolated(self, stages):
        """Test that stages do not share state."""
        await stages.load_index_stage_state("a", "version", 1)
        await stages.load_index_stage_state("a", "version", 2)

        result, _ = await stages.load_index_stage_state("b", "version", 2)

        assert result == "1"


class TestIndexStageState:
    """Test the persisted record shape."""

    def test_document_round_trip(self):
        """Test conversion to and from the persisted record."""
        state = IndexStageState("id1", "stage-1", {"version": 5, "index": 1}, 123)

        doc = state.to_document()

        assert doc == {
            "_id": "id1",
            "stageId": "stage-1",
            "attributes": {"version": 5, "index": 1},
            "modifiedOn": 123,
        }
        assert IndexStageState.from_document(doc) == state

    def test_index_absent(self):
        """Test that a fresh state has no index."""
        assert IndexStageState("id1", "s").index is None
