from conftest import Clock, MemoryStore

from draftkeeper.core.models import ContextKey, DraftContent, DraftRecord
from draftkeeper.drafts.cache import MemoryCache, PersistenceDebouncer
from draftkeeper.drafts.persistence import DraftPersistence
from draftkeeper.drafts.processing import ProcessingDisambiguator
from draftkeeper.drafts.send_detector import SendSignalDetector
from draftkeeper.drafts.session_state import SessionState
from draftkeeper.drafts.timers import TimerTable
from draftkeeper.telemetry.inmemory import InMemoryTelemetry

C1 = ContextKey("C1")


class Harness:
    def __init__(self) -> None:
        self.store = MemoryStore()
        self.clock = Clock()
        self.state = SessionState(self.clock)
        self.telemetry = InMemoryTelemetry()
        self.cache = MemoryCache()
        timers = TimerTable()
        persistence = DraftPersistence(self.store)
        self.debouncer = PersistenceDebouncer(
            self.cache, persistence, timers, self.state, debounce_ms=10_000
        )
        self.processing = ProcessingDisambiguator(
            persistence,
            timers,
            self.state,
            active_context=lambda: C1,
            assistance_enabled=lambda: True,
            clock=self.clock,
        )
        self.detector = SendSignalDetector(
            self.cache,
            self.debouncer,
            persistence,
            self.processing,
            self.state,
            active_context=lambda: C1,
            similarity_threshold=60,
            just_sent_suppress_ms=500,
            arm_timeout_ms=3000,
            telemetry=self.telemetry,
        )

    def capture(self, text: str) -> None:
        self.debouncer.capture(
            DraftContent(context=C1, plain_text=text, rich_content={"root": text}, timestamp=1)
        )
        self.store.records[C1] = DraftRecord(
            rich_content={"root": text}, plain_text=text, timestamp=1
        )


async def test_matching_send_clears_draft_and_marks_just_sent() -> None:
    h = Harness()
    h.capture("hello world")

    assert await h.detector.fire("hello world!") is True
    assert h.cache.entry is None
    assert not h.debouncer.flush_pending
    assert C1 not in h.store.records
    assert h.state.just_sent
    assert h.telemetry.get_counter("send_fire_cleared") == 1


async def test_dissimilar_send_is_ignored() -> None:
    h = Harness()
    h.capture("hello world")

    assert await h.detector.fire("completely different") is False
    assert h.cache.text_for(C1) == "hello world"
    assert C1 in h.store.records
    assert not h.state.just_sent
    assert h.telemetry.get_counter("send_fire_ignored") == 1


async def test_send_without_text_always_fires() -> None:
    h = Harness()
    h.capture("anything")
    assert await h.detector.fire() is True
    assert C1 not in h.store.records


async def test_fire_after_editor_emptied_resolves_processing_as_deleted() -> None:
    h = Harness()
    h.capture("about to send")
    held = h.cache.clear()
    h.processing.enter(C1, held)
    h.detector.arm()
    assert h.detector.armed

    assert await h.detector.fire("about to send") is True
    assert not h.processing.has(C1)
    assert not h.detector.armed
    assert C1 not in h.store.records


async def test_fire_is_idempotent() -> None:
    h = Harness()
    h.capture("hello")
    assert await h.detector.fire("hello") is True
    assert await h.detector.fire("hello") is True
    assert h.store.records == {}


def test_arm_lapses_on_its_own() -> None:
    h = Harness()
    h.detector.arm()
    assert h.detector.armed
    h.clock.advance(3001)
    assert not h.detector.armed
