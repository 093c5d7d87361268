"""End-to-end lifecycle scenarios against the manager with scaled-down timings."""

from conftest import FakeSettings, MemoryStore, fast_config, wait_ms

from draftkeeper.core.models import ContextKey, DraftRecord

C1 = ContextKey("C1")
C2 = ContextKey("C2")
SETTLE = 60


def _record(text: str, **kwargs) -> DraftRecord:
    return DraftRecord(rich_content={"root": text}, plain_text=text, timestamp=1, **kwargs)


async def _open(manager, context: ContextKey) -> None:
    await manager.switch_context(context)
    await wait_ms(SETTLE)
    assert not manager.state.transitioning


async def _type(manager, editor, text: str) -> None:
    editor.type(text)
    await manager.content_changed()


async def test_typing_is_saved_after_debounce(make_manager, editor, store) -> None:
    m = make_manager()
    await _open(m, C1)

    await _type(m, editor, "h")
    await _type(m, editor, "hello")
    assert store.get(C1) is None
    await wait_ms(SETTLE)

    record = store.get(C1)
    assert record is not None
    assert record.plain_text == "hello"
    assert record.rich_content == {"root": "hello"}


async def test_type_then_send_leaves_no_draft(make_manager, editor, store, telemetry) -> None:
    m = make_manager()
    await _open(m, C1)
    await _type(m, editor, "see you at five")
    await wait_ms(SETTLE)
    assert store.get(C1) is not None

    await _type(m, editor, "")
    assert m.processing.has(C1)
    assert m.detector.armed

    assert await m.message_sent("see you at five") is True
    assert store.get(C1) is None
    assert not m.processing.has(C1)

    # editor echoes after send must not resurrect the draft
    await _type(m, editor, "")
    await wait_ms(SETTLE)
    assert store.get(C1) is None
    assert telemetry.get_counter(
        "processing_finalized", (("marker", "sent"), ("outcome", "deleted"))
    ) == 1


async def test_send_before_editor_empties_is_matched_by_similarity(make_manager, editor, store) -> None:
    m = make_manager()
    await _open(m, C1)
    await _type(m, editor, "lunch tomorrow?")

    assert await m.message_sent("something else entirely") is False
    assert m.cache.text_for(C1) == "lunch tomorrow?"

    assert await m.message_sent("Lunch tomorrow?") is True
    assert m.cache.entry is None
    await wait_ms(SETTLE)
    assert store.get(C1) is None


async def test_capture_ignored_while_just_sent(make_manager, editor, store) -> None:
    m = make_manager()
    await _open(m, C1)
    await _type(m, editor, "hello")
    await m.message_sent("hello")

    await _type(m, editor, "hello")
    assert m.cache.entry is None

    await wait_ms(150)
    await _type(m, editor, "new thought")
    assert m.cache.text_for(C1) == "new thought"


async def test_switch_away_and_back_restores_draft(make_manager, editor, store, telemetry) -> None:
    m = make_manager()
    await _open(m, C1)
    await _type(m, editor, "draft one")

    # switching flushes synchronously, without waiting for the debounce
    await m.switch_context(C2)
    assert store.get(C1).plain_text == "draft one"
    assert m.cache.entry is None

    editor.type("")
    await wait_ms(SETTLE)
    assert editor.writes == []

    await m.switch_context(C1)
    await wait_ms(SETTLE)
    assert editor.writes == [{"root": "draft one"}]
    assert editor.text == "draft one"
    assert telemetry.get_counter("draft_restored") == 1
    assert not m.state.restoring
    assert m.cache.text_for(C1) == "draft one"


async def test_restore_never_overwrites_live_content(make_manager, editor, store) -> None:
    store.set(C1, _record("stored"))
    m = make_manager()
    editor.type("typed already")

    await _open(m, C1)
    assert editor.writes == []
    assert editor.text == "typed already"


async def test_rapid_switching_only_restores_final_context(make_manager, editor, store) -> None:
    store.set(C1, _record("one"))
    store.set(C2, _record("two"))
    m = make_manager()

    await m.switch_context(C1)
    await m.switch_context(C2)
    await wait_ms(SETTLE)

    assert editor.writes == [{"root": "two"}]
    assert m.current_context == C2


async def test_capture_suppressed_during_transition(make_manager, editor) -> None:
    m = make_manager()
    await m.switch_context(C1)
    assert m.state.transitioning

    await _type(m, editor, "too early")
    assert m.cache.entry is None

    await wait_ms(SETTLE)
    await _type(m, editor, "now it counts")
    assert m.cache.text_for(C1) == "now it counts"


async def test_accidental_clear_becomes_pending_then_swept(make_manager, editor, store, telemetry) -> None:
    m = make_manager()
    await m.start()
    await _open(m, C1)
    await _type(m, editor, "important")
    await wait_ms(SETTLE)

    await _type(m, editor, "")
    await wait_ms(200)
    record = store.get(C1)
    assert record is not None
    assert record.pending_deletion_at is not None
    assert not m.processing.has(C1)

    await wait_ms(300)
    assert store.get(C1) is None
    assert telemetry.get_counter("draft_swept") >= 1


async def test_undo_keeps_pending_draft(make_manager, editor, store) -> None:
    m = make_manager()
    await m.start()
    await _open(m, C1)
    await _type(m, editor, "important")
    await wait_ms(SETTLE)
    await _type(m, editor, "")
    await wait_ms(200)

    assert m.cancel_pending_deletion(C1) is True
    await wait_ms(300)
    record = store.get(C1)
    assert record is not None
    assert record.pending_deletion_at is None


async def test_pending_draft_is_not_restored(make_manager, editor, store) -> None:
    store.set(C1, _record("gone soon", pending_deletion_at=10**15))
    m = make_manager()
    await _open(m, C1)
    assert editor.writes == []


async def test_clear_without_assistance_deletes(make_manager, editor, store) -> None:
    settings = FakeSettings(accidental_deletion_assistance=False)
    m = make_manager(settings=settings)
    await m.start()
    await _open(m, C1)
    await _type(m, editor, "temporary")
    await wait_ms(SETTLE)

    await _type(m, editor, "")
    await wait_ms(200)
    assert store.get(C1) is None


async def test_clear_then_switch_away_keeps_draft(make_manager, editor, store, telemetry) -> None:
    m = make_manager()
    await _open(m, C1)
    await _type(m, editor, "keep this")
    await wait_ms(SETTLE)

    await _type(m, editor, "")
    await m.switch_context(C2)

    record = store.get(C1)
    assert record is not None
    assert record.plain_text == "keep this"
    assert record.pending_deletion_at is None
    assert telemetry.get_counter(
        "processing_finalized", (("marker", "channel_switch"), ("outcome", "persisted"))
    ) == 1


async def test_typing_again_discards_processing(make_manager, editor, store) -> None:
    m = make_manager()
    await m.start()
    await _open(m, C1)
    await _type(m, editor, "first")
    await _type(m, editor, "")
    assert m.processing.has(C1)

    await _type(m, editor, "second")
    assert not m.processing.has(C1)
    await wait_ms(200)
    record = store.get(C1)
    assert record.plain_text == "second"
    assert record.pending_deletion_at is None


async def test_manual_delete_removes_record_and_cache(make_manager, editor, store) -> None:
    m = make_manager()
    await _open(m, C1)
    await _type(m, editor, "unwanted")
    await wait_ms(SETTLE)

    assert await m.manual_delete_requested(C1) is True
    assert store.get(C1) is None
    assert m.cache.entry is None
    await wait_ms(SETTLE)
    assert store.get(C1) is None


async def test_thread_draft_records_parent_timestamp(make_manager, editor, store) -> None:
    async def lookup(thread_id: str) -> int:
        return 1234

    thread = ContextKey("C1", "T1")
    m = make_manager(parent_lookup=lookup)
    await _open(m, thread)
    await _type(m, editor, "reply in thread")
    await wait_ms(SETTLE)

    record = store.get(thread)
    assert record.thread_id == "T1"
    assert record.parent_message_timestamp == 1234
    assert store.get(C1) is None


async def test_editor_timeout_leaves_state_untouched(make_manager, editor, telemetry) -> None:
    m = make_manager()
    await _open(m, C1)
    editor.fail_reads = True
    await _type(m, editor, "lost keystroke")

    assert m.cache.entry is None
    assert telemetry.get_counter("editor_timeout", (("op", "read"),)) == 1


async def test_store_failure_does_not_interrupt_capture(make_manager, editor, telemetry) -> None:
    broken = MemoryStore()
    broken.broken = True
    m = make_manager(store=broken)
    await _open(m, C1)
    await _type(m, editor, "still typing")
    await wait_ms(SETTLE)

    assert m.cache.text_for(C1) == "still typing"
    assert telemetry.get_counter("store_error", (("op", "set"),)) >= 1


async def test_count_notifications_and_management(make_manager, editor, store) -> None:
    counts: list[int] = []
    m = make_manager(notify_count=counts.append)
    await _open(m, C1)
    await _type(m, editor, "one")
    await m.switch_context(C2)
    await wait_ms(SETTLE)
    await _type(m, editor, "two")
    await m.flush()

    assert counts[-1] == 2
    assert set(m.list_drafts()) == {C1, C2}
    assert m.get_draft(C2).plain_text == "two"

    stats = m.stats()
    assert stats["current_context"] == "C2"
    assert stats["total_drafts"] == 2

    assert m.clear_all_drafts() == 2
    assert counts[-1] == 0
    assert m.list_drafts() == {}


async def test_switch_to_no_context_ends_transition(make_manager, editor, store) -> None:
    m = make_manager()
    await _open(m, C1)
    await _type(m, editor, "bye")
    assert await m.switch_context(None) is True
    assert not m.state.transitioning
    assert store.get(C1).plain_text == "bye"
    assert await m.switch_context(None) is False


async def test_stop_cancels_pending_timers(make_manager, editor, store) -> None:
    m = make_manager(config=fast_config(save_debounce_ms=50))
    await m.start()
    await _open(m, C1)
    await _type(m, editor, "unsaved")
    await m.stop()

    await wait_ms(100)
    assert store.get(C1) is None
    assert len(m.timers) == 0


async def test_manual_delete_during_parent_lookup_stays_deleted(make_manager, editor, store) -> None:
    async def slow_lookup(thread_id: str) -> int:
        await wait_ms(80)
        return 1234

    thread = ContextKey("C1", "T1")
    m = make_manager(parent_lookup=slow_lookup)
    await _open(m, thread)
    await _type(m, editor, "secret reply")
    await wait_ms(40)

    await m.manual_delete_requested(thread)
    await wait_ms(120)
    assert store.get(thread) is None
    assert m.cache.entry is None


async def test_idle_delete_during_parent_lookup_stays_deleted(make_manager, editor, store) -> None:
    async def slow_lookup(thread_id: str) -> int:
        await wait_ms(300)
        return 1234

    thread = ContextKey("C1", "T1")
    m = make_manager(
        config=fast_config(editor_timeout_ms=500),
        settings=FakeSettings(accidental_deletion_assistance=False),
        parent_lookup=slow_lookup,
    )
    await m.start()
    await _open(m, thread)
    await _type(m, editor, "temp")
    await wait_ms(40)

    await _type(m, editor, "")
    await wait_ms(200)
    assert not m.processing.has(thread)
    assert store.get(thread) is None

    await wait_ms(250)
    assert store.get(thread) is None


async def test_clear_all_during_parent_lookup_stays_empty(make_manager, editor, store) -> None:
    async def slow_lookup(thread_id: str) -> int:
        await wait_ms(80)
        return 1234

    thread = ContextKey("C1", "T1")
    m = make_manager(parent_lookup=slow_lookup)
    await _open(m, thread)
    await _type(m, editor, "half written")
    await wait_ms(40)

    m.clear_all_drafts()
    await wait_ms(120)
    assert m.list_drafts() == {}


async def test_restore_in_flight_during_switch_is_undone(make_manager, editor, store) -> None:
    store.set(C1, _record("for C1 only"))
    m = make_manager()
    editor.write_delay_ms = 50

    await m.switch_context(C1)
    await wait_ms(30)
    await m.switch_context(C2)
    editor.type("")
    await wait_ms(250)

    assert m.current_context == C2
    assert editor.text == ""
    assert editor.writes[0] == {"root": "for C1 only"}
    assert editor.writes[-1] is None
    assert store.get(C2) is None
    assert store.get(C1).plain_text == "for C1 only"


async def test_restore_in_flight_during_clear_all_is_undone(make_manager, editor, store) -> None:
    store.set(C1, _record("about to vanish"))
    m = make_manager()
    editor.write_delay_ms = 50

    await m.switch_context(C1)
    await wait_ms(30)
    assert m.clear_all_drafts() == 1
    await wait_ms(200)

    assert m.current_context == C1
    assert editor.text == ""
    assert m.cache.entry is None
    assert m.list_drafts() == {}
