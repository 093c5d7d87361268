import asyncio
import time
from pathlib import Path
from typing import Any

import pytest

from draftkeeper.config.schema import DraftsConfig
from draftkeeper.core.errors import DraftStoreError
from draftkeeper.core.models import ContextKey, DraftRecord, EditorResponse
from draftkeeper.drafts.manager import DraftLifecycleManager
from draftkeeper.storage.draft_store import SqliteDraftStore
from draftkeeper.telemetry.inmemory import InMemoryTelemetry


class Clock:
    """Wall clock in epoch ms that tests can push forward."""

    def __init__(self) -> None:
        self.offset = 0

    def __call__(self) -> int:
        return int(time.time() * 1000) + self.offset

    def advance(self, ms: int) -> None:
        self.offset += ms


class FakeEditor:
    def __init__(self) -> None:
        self.text = ""
        self.rich: Any = None
        self.reads = 0
        self.writes: list[Any] = []
        self.fail_reads = False
        self.write_delay_ms = 0

    def type(self, text: str) -> None:
        self.text = text
        self.rich = {"root": text} if text else None

    async def read_state(self) -> EditorResponse:
        self.reads += 1
        await asyncio.sleep(0)
        if self.fail_reads:
            return EditorResponse.timeout()
        return EditorResponse(success=True, plain_text=self.text, rich_content=self.rich)

    async def write_state(self, rich_content: Any) -> EditorResponse:
        self.writes.append(rich_content)
        await asyncio.sleep(self.write_delay_ms / 1000.0)
        self.rich = rich_content
        self.text = rich_content.get("root", "") if isinstance(rich_content, dict) else ""
        return EditorResponse(success=True, plain_text=self.text, rich_content=rich_content)


class FakeSettings:
    def __init__(self, **values: bool) -> None:
        self.values = values

    def get(self, name: str) -> bool:
        return self.values[name]


class MemoryStore:
    """Dict-backed store that can be switched into failure mode."""

    def __init__(self) -> None:
        self.records: dict[ContextKey, DraftRecord] = {}
        self.broken = False

    def _check(self, op: str) -> None:
        if self.broken:
            raise DraftStoreError(op, "quota exceeded")

    def get_all(self) -> dict[ContextKey, DraftRecord]:
        self._check("get_all")
        return dict(self.records)

    def get(self, context: ContextKey) -> DraftRecord | None:
        self._check("get")
        return self.records.get(context)

    def set(self, context: ContextKey, record: DraftRecord) -> None:
        self._check("set")
        self.records[context] = record

    def delete(self, context: ContextKey) -> bool:
        self._check("delete")
        return self.records.pop(context, None) is not None

    def clear(self) -> int:
        self._check("clear")
        n = len(self.records)
        self.records.clear()
        return n

    def count(self) -> int:
        self._check("count")
        return len(self.records)


def fast_config(**overrides: Any) -> DraftsConfig:
    values = {
        "save_debounce_ms": 20,
        "restore_delay_ms": 20,
        "restore_settle_ms": 10,
        "transition_settle_ms": 10,
        "processing_timeout_ms": 400,
        "idle_check_interval_ms": 20,
        "idle_threshold_ms": 100,
        "pending_deletion_grace_ms": 200,
        "sweep_interval_ms": 20,
        "just_sent_suppress_ms": 100,
        "send_arm_timeout_ms": 300,
        "editor_timeout_ms": 100,
    }
    values.update(overrides)
    return DraftsConfig(**values)


async def wait_ms(ms: int) -> None:
    await asyncio.sleep(ms / 1000.0)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def editor() -> FakeEditor:
    return FakeEditor()


@pytest.fixture
def telemetry() -> InMemoryTelemetry:
    return InMemoryTelemetry()


@pytest.fixture
def store(tmp_path: Path):
    s = SqliteDraftStore(tmp_path / "drafts.db")
    yield s
    s.close()


@pytest.fixture
async def make_manager(store, editor, clock, telemetry):
    created: list[DraftLifecycleManager] = []

    def _make(**kwargs: Any) -> DraftLifecycleManager:
        kwargs.setdefault("config", fast_config())
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("telemetry", telemetry)
        manager = DraftLifecycleManager(kwargs.pop("store", store), editor, **kwargs)
        created.append(manager)
        return manager

    yield _make
    for manager in created:
        await manager.stop()
