from datetime import datetime

import pytest
from pydantic import ValidationError

from pitch_pipeline.config import RunOptions
from pitch_pipeline.state import (
    CheckpointManager,
    InMemoryCheckpointStore,
    InMemoryRunHistory,
    MongoCheckpointStore,
    MongoRunHistory,
    RunContext,
)


def test_record_is_append_only():
    ctx = RunContext(seed_input="octopus")
    ctx.record("market_mandate", "mandate")
    with pytest.raises(KeyError):
        ctx.record("market_mandate", "again")
    assert ctx.get("market_mandate") == "mandate"


def test_replace_requires_existing_key():
    ctx = RunContext(seed_input="octopus")
    with pytest.raises(KeyError):
        ctx.replace("draft_v2", "draft")
    ctx.record("draft_v2", "v2")
    ctx.replace("draft_v2", "v3")
    assert ctx.get("draft_v2") == "v3"


def test_get_missing_and_constraints():
    ctx = RunContext(seed_input="octopus")
    assert ctx.get("fact_sheet") == ""
    ctx.set_constraint("hero_species", None)
    ctx.set_constraint("narrative_form", "Heist caper")
    assert ctx.constraints == {"narrative_form": "Heist caper"}


def test_mark_unresolved_keeps_one_entry_per_stage():
    ctx = RunContext(seed_input="octopus")
    ctx.mark_unresolved("fact_sheet", "rejection", {"category": "validity"})
    ctx.mark_unresolved("fact_sheet", "rejection", {"category": "generic"})
    assert ctx.unresolved_gates == [{"stage": "fact_sheet", "gate": "rejection", "category": "generic"}]


def test_context_rebuilds_with_new_seed():
    ctx = RunContext(seed_input="octopus", options=RunOptions(audience="Netflix", max_revisions=1))
    ctx.record("market_mandate", "mandate")
    ctx.knowledge = "### Relevant Research"

    rebuilt = RunContext.from_dict(ctx.to_dict(), seed_input="cuttlefish")

    assert rebuilt.seed_input == "cuttlefish"
    assert rebuilt.outputs == {"market_mandate": "mandate"}
    assert rebuilt.options.audience == "Netflix"
    assert rebuilt.options.max_revisions == 1
    assert rebuilt.knowledge == "### Relevant Research"


def test_run_options_bounds():
    with pytest.raises(ValidationError):
        RunOptions(max_revisions=11)
    with pytest.raises(ValidationError):
        RunOptions(on_exhausted="shrug")
    assert RunOptions().max_revisions == 3


def test_checkpoint_save_and_load():
    store = InMemoryCheckpointStore()
    manager = CheckpointManager(store, slot="test")
    ctx = RunContext(seed_input="octopus", options=RunOptions(creative_lock="nature-noir"))
    ctx.record("discovery", "brief")
    started = datetime(2026, 1, 5, 12, 0)

    manager.save(ctx, "discovery", started)
    checkpoint = manager.load()

    assert checkpoint.last_completed_stage == "discovery"
    assert checkpoint.seed_input == "octopus"
    assert checkpoint.started_at == started
    assert checkpoint.standing_directives["creative_lock"] == "nature-noir"
    assert checkpoint.context["outputs"] == {"discovery": "brief"}

    manager.clear()
    assert manager.load() is None


def test_unreadable_checkpoint_is_discarded():
    store = InMemoryCheckpointStore()
    store.put("current", {"context": "not a dict"})
    assert CheckpointManager(store).load() is None


class BrokenStore:
    def get(self, slot_key):
        raise ConnectionError("mongo down")

    def put(self, slot_key, snapshot):
        raise ConnectionError("mongo down")

    def delete(self, slot_key):
        raise ConnectionError("mongo down")


def test_checkpoint_failures_never_raise():
    manager = CheckpointManager(BrokenStore())
    manager.save(RunContext(seed_input="octopus"), "discovery", datetime.utcnow())
    assert manager.load() is None
    manager.clear()


class FakeCollection:
    def __init__(self):
        self.updates = []
        self.docs = []

    def update_one(self, query, update, upsert=False):
        self.updates.append((query, update, upsert))

    def find_one(self, query):
        return {"slot": query["slot"], "snapshot": {"last_completed_stage": "x"}}

    def delete_one(self, query):
        self.docs = [d for d in self.docs if d.get("slot") != query["slot"]]

    def insert_one(self, doc):
        self.docs.append(dict(doc, _id=len(self.docs)))

    def find(self, query):
        return FakeCursor(self.docs)


class FakeCursor:
    def __init__(self, docs):
        self.docs = list(docs)

    def sort(self, key, direction):
        self.docs.sort(key=lambda d: d[key], reverse=direction < 0)
        return self

    def limit(self, n):
        self.docs = self.docs[:n]
        return self

    def __iter__(self):
        return iter(self.docs)


def test_mongo_checkpoint_store_upserts_single_slot():
    collection = FakeCollection()
    store = MongoCheckpointStore(collection)

    store.put("current", {"last_completed_stage": "fact_sheet"})

    query, update, upsert = collection.updates[0]
    assert query == {"slot": "current"}
    assert upsert is True
    assert update["$set"]["snapshot"] == {"last_completed_stage": "fact_sheet"}
    assert "created_at" in update["$setOnInsert"]
    assert store.get("current") == {"last_completed_stage": "x"}


def test_in_memory_history_newest_first():
    history = InMemoryRunHistory()
    first = history.append("octopus", "card one")
    second = history.append("cuttlefish", "card two")

    runs = history.list_runs()

    assert [r["id"] for r in runs] == [second["id"], first["id"]]
    assert history.list_runs(limit=1)[0]["seed_input"] == "cuttlefish"
    assert set(first) == {"id", "timestamp", "seed_input", "artifact_text"}


def test_mongo_history_strips_ids():
    collection = FakeCollection()
    history = MongoRunHistory(collection)
    entry = history.append("octopus", "card one")
    collection.docs[0]["timestamp"] = datetime(2026, 1, 1)
    collection.insert_one({"id": "b", "timestamp": datetime(2026, 2, 1), "seed_input": "cuttlefish",
                           "artifact_text": "card two"})

    runs = history.list_runs(limit=5)

    assert all("_id" not in r for r in runs)
    assert runs[0]["seed_input"] == "cuttlefish"
    assert runs[1]["id"] == entry["id"]
