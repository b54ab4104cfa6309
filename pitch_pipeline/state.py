"""
Run state and persistence for pitch pipeline runs.

Supports:
- RunContext: the explicit handle threaded through every stage call
- Checkpoint snapshots in a single logical slot (MongoDB or in-memory)
- Append-only run history of completed artifacts

The checkpoint slot is shared by every run that uses the same store, so it is
not safe for concurrently checkpointing runs. Independent runs that skip
checkpointing (or use separate slots) are unaffected.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from pitch_pipeline import config

logger = logging.getLogger(__name__)


RUN_STATUS_PENDING = "pending"
RUN_STATUS_RUNNING = "running"
RUN_STATUS_COMPLETED = "completed"
RUN_STATUS_FAILED = "failed"
RUN_STATUS_CANCELLED = "cancelled"


# --- Run Context ---

@dataclass
class RunContext:
    """Mutable accumulator for one run: stage outputs, derived constraints, gate annotations."""

    seed_input: str
    options: config.RunOptions = field(default_factory=config.RunOptions)
    outputs: Dict[str, str] = field(default_factory=dict)
    constraints: Dict[str, str] = field(default_factory=dict)
    unresolved_gates: List[dict] = field(default_factory=list)
    knowledge: str = ""
    status: str = RUN_STATUS_PENDING

    def get(self, key: str, default: str = "") -> str:
        value = self.outputs.get(key)
        return value if value else default

    def has(self, key: str) -> bool:
        return key in self.outputs

    def record(self, key: str, text: str):
        """Append a stage output. Outputs are write-once outside of gate loops."""
        if key in self.outputs:
            raise KeyError(f"Output '{key}' already recorded")
        self.outputs[key] = text or ""

    def replace(self, key: str, text: str):
        """Overwrite an output with a loop's accepted attempt."""
        if key not in self.outputs:
            raise KeyError(f"Output '{key}' has not been recorded yet")
        self.outputs[key] = text or ""

    def set_constraint(self, name: str, value: Optional[str]):
        if value:
            self.constraints[name] = value

    def mark_unresolved(self, stage_key: str, gate: str, detail: dict):
        self.unresolved_gates = [g for g in self.unresolved_gates if g.get("stage") != stage_key]
        self.unresolved_gates.append({"stage": stage_key, "gate": gate, **detail})

    def to_dict(self) -> dict:
        return {
            "seed_input": self.seed_input,
            "options": self.options.model_dump(),
            "outputs": dict(self.outputs),
            "constraints": dict(self.constraints),
            "unresolved_gates": [dict(g) for g in self.unresolved_gates],
            "knowledge": self.knowledge,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict, seed_input: Optional[str] = None) -> "RunContext":
        data = data or {}
        return cls(
            seed_input=seed_input if seed_input is not None else data.get("seed_input", ""),
            options=config.RunOptions(**(data.get("options") or {})),
            outputs=dict(data.get("outputs") or {}),
            constraints=dict(data.get("constraints") or {}),
            unresolved_gates=[dict(g) for g in data.get("unresolved_gates") or []],
            knowledge=data.get("knowledge", ""),
            status=data.get("status", RUN_STATUS_RUNNING),
        )


# --- Checkpoints ---

class Checkpoint(BaseModel):
    """Durable snapshot of an in-flight run, taken after a completed stage."""

    context: Dict[str, Any]
    last_completed_stage: str
    standing_directives: Dict[str, Any] = Field(default_factory=dict)
    started_at: datetime
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def seed_input(self) -> str:
        return self.context.get("seed_input", "")


class InMemoryCheckpointStore:
    """Process-local checkpoint slots."""

    def __init__(self):
        self._slots: Dict[str, dict] = {}

    def get(self, slot_key: str) -> Optional[dict]:
        snapshot = self._slots.get(slot_key)
        return dict(snapshot) if snapshot else None

    def put(self, slot_key: str, snapshot: dict):
        self._slots[slot_key] = dict(snapshot)

    def delete(self, slot_key: str):
        self._slots.pop(slot_key, None)


class MongoCheckpointStore:
    """Checkpoint slots persisted to a MongoDB collection, one document per slot."""

    def __init__(self, collection):
        self.collection = collection

    @classmethod
    def from_config(cls) -> "MongoCheckpointStore":
        return cls(get_db().pitch_checkpoints)

    def get(self, slot_key: str) -> Optional[dict]:
        doc = self.collection.find_one({"slot": slot_key})
        return doc.get("snapshot") if doc else None

    def put(self, slot_key: str, snapshot: dict):
        now = datetime.utcnow()
        self.collection.update_one(
            {"slot": slot_key},
            {"$set": {
                "slot": slot_key,
                "snapshot": snapshot,
                "updated_at": now,
            }, "$setOnInsert": {"created_at": now}},
            upsert=True,
        )

    def delete(self, slot_key: str):
        self.collection.delete_one({"slot": slot_key})


class CheckpointManager:
    """
    Writes a snapshot after each completed stage and reads it back once at startup.

    Persistence failures are logged and never block the run. There is no check
    binding a checkpoint to the seed it was created for.
    """

    def __init__(self, store, slot: str = None):
        self.store = store
        self.slot = slot or config.CHECKPOINT_SLOT

    def save(self, context: RunContext, stage_key: str, started_at: datetime):
        checkpoint = Checkpoint(
            context=context.to_dict(),
            last_completed_stage=stage_key,
            standing_directives=context.options.standing_directives(),
            started_at=started_at,
        )
        try:
            self.store.put(self.slot, checkpoint.model_dump())
            logger.debug("[checkpoint] saved after stage %s", stage_key)
        except Exception as e:
            logger.warning("[checkpoint] save failed after stage %s: %s", stage_key, e)

    def load(self) -> Optional[Checkpoint]:
        try:
            snapshot = self.store.get(self.slot)
        except Exception as e:
            logger.warning("[checkpoint] load failed: %s", e)
            return None
        if not snapshot:
            return None
        try:
            return Checkpoint.model_validate(snapshot)
        except ValueError as e:
            logger.warning("[checkpoint] discarding unreadable snapshot: %s", e)
            return None

    def clear(self):
        try:
            self.store.delete(self.slot)
        except Exception as e:
            logger.warning("[checkpoint] clear failed: %s", e)


# --- Run History ---

class InMemoryRunHistory:
    def __init__(self):
        self._runs: List[dict] = []

    def append(self, seed_input: str, artifact_text: str) -> dict:
        entry = _history_entry(seed_input, artifact_text)
        self._runs.append(entry)
        return dict(entry)

    def list_runs(self, limit: int = 50) -> List[dict]:
        return [dict(r) for r in reversed(self._runs)][:limit]


class MongoRunHistory:
    """Append-only log of completed runs."""

    def __init__(self, collection):
        self.collection = collection

    @classmethod
    def from_config(cls) -> "MongoRunHistory":
        return cls(get_db().pitch_run_history)

    def append(self, seed_input: str, artifact_text: str) -> dict:
        entry = _history_entry(seed_input, artifact_text)
        self.collection.insert_one(dict(entry))
        return entry

    def list_runs(self, limit: int = 50) -> List[dict]:
        runs = list(self.collection.find({}).sort("timestamp", -1).limit(limit))
        for r in runs:
            r.pop("_id", None)
        return runs


def _history_entry(seed_input: str, artifact_text: str) -> dict:
    return {
        "id": uuid.uuid4().hex[:12],
        "timestamp": datetime.utcnow(),
        "seed_input": seed_input,
        "artifact_text": artifact_text,
    }


# --- MongoDB ---

_client = None


def get_db():
    """Lazily connect to the configured MongoDB database."""
    global _client
    if _client is None:
        from pymongo import MongoClient
        _client = MongoClient(config.MONGODB_URI)
        db = _client[config.MONGODB_DB_NAME]
        db.pitch_checkpoints.create_index("slot", unique=True)
        db.pitch_run_history.create_index("timestamp")
    return _client[config.MONGODB_DB_NAME]
