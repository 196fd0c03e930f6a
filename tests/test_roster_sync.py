import asyncio

import pytest

from models.attendance_record import AttendanceRecord, AttendeeIdentity
from services.attendance.roster_sync import RosterSync, build_roster

SESSION = "session-1-aaaaaaa"


def test_build_roster_sorts_by_name_then_id():
    records = [
        AttendanceRecord("uuid-2", SESSION, 1, "Bob"),
        AttendanceRecord("uuid-1", SESSION, 2, "Alice"),
        AttendanceRecord("uuid-3", SESSION, 3, "Charlie"),
        AttendanceRecord("uuid-0", SESSION, 4, "Alice"),
    ]
    roster = build_roster(records)
    assert [(e.display_name, e.attendee_id) for e in roster] == [
        ("Alice", "uuid-0"),
        ("Alice", "uuid-1"),
        ("Bob", "uuid-2"),
        ("Charlie", "uuid-3"),
    ]


def test_build_roster_labels_unknown_attendees():
    roster = build_roster([AttendanceRecord("ghost", SESSION, 1, None)])
    assert roster[0].display_name == "Unknown Student"


async def test_refresh_publishes_only_when_count_changes(memory_store):
    sync = RosterSync(memory_store)
    sync.reset(SESSION)
    assert await sync.refresh(SESSION) is False
    assert sync.roster == ()

    await memory_store.record_if_absent(SESSION, "uuid-2")
    await memory_store.record_if_absent(SESSION, "uuid-1")
    assert await sync.refresh(SESSION) is True
    assert [e.display_name for e in sync.roster] == ["Alice Johnson", "Bob Williams"]

    assert await sync.refresh(SESSION) is False


async def test_refresh_ignores_other_sessions(memory_store):
    sync = RosterSync(memory_store)
    sync.reset(SESSION)
    await memory_store.record_if_absent("other", "uuid-1")
    assert await sync.refresh("other") is False
    assert memory_store.list_calls == 0


class GatedStore:
    """Store whose reads block until released."""

    def __init__(self, records):
        self.records = records
        self.gate = asyncio.Event()
        self.calls = 0

    async def list_by_session(self, session_id):
        self.calls += 1
        await self.gate.wait()
        return list(self.records)


async def test_refresh_skips_while_previous_is_in_flight():
    store = GatedStore([AttendanceRecord("uuid-1", SESSION, 1, "Alice")])
    sync = RosterSync(store)
    sync.reset(SESSION)

    first = asyncio.create_task(sync.refresh(SESSION))
    await asyncio.sleep(0)
    assert await sync.refresh(SESSION) is False
    assert store.calls == 1

    store.gate.set()
    assert await first is True


async def test_result_for_replaced_session_is_discarded():
    store = GatedStore([AttendanceRecord("uuid-1", SESSION, 1, "Alice")])
    sync = RosterSync(store)
    sync.reset(SESSION)

    pending = asyncio.create_task(sync.refresh(SESSION))
    await asyncio.sleep(0)
    sync.reset("session-2-bbbbbbb")
    store.gate.set()

    assert await pending is False
    assert sync.roster == ()


async def test_detach_keeps_last_roster(memory_store):
    sync = RosterSync(memory_store)
    sync.reset(SESSION)
    await memory_store.record_if_absent(SESSION, "uuid-1")
    await sync.refresh(SESSION)
    sync.detach()
    await memory_store.record_if_absent(SESSION, "uuid-2")
    assert await sync.refresh(SESSION) is False
    assert len(sync.roster) == 1


async def test_run_polls_every_period_and_survives_read_errors(memory_store, clock, caplog):
    sync = RosterSync(memory_store, poll_seconds=2, sleep=clock.sleep)
    sync.reset(SESSION)
    start = clock.now
    task = asyncio.create_task(sync.run(SESSION))

    await clock.advance_to(start)
    assert memory_store.list_calls == 1

    memory_store.fail_reads = True
    await clock.advance_to(start + 2_000)
    assert memory_store.list_calls == 2
    assert "Error fetching attendance" in caplog.text

    memory_store.fail_reads = False
    await memory_store.record_if_absent(SESSION, "uuid-3")
    await clock.advance_to(start + 4_000)
    assert memory_store.list_calls == 3
    assert [e.attendee_id for e in sync.roster] == ["uuid-3"]

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


def test_rejects_non_positive_period(memory_store):
    with pytest.raises(ValueError):
        RosterSync(memory_store, poll_seconds=0)


async def test_roster_is_alphabetical_regardless_of_arrival(memory_store, clock):
    store = memory_store
    people = [AttendeeIdentity("b", "Bob", "1"), AttendeeIdentity("a", "Alice", "2"), AttendeeIdentity("c", "Charlie", "3")]
    store.attendees = {a.id: a for a in people}
    for attendee_id in ("b", "a", "c"):
        await store.record_if_absent(SESSION, attendee_id)
        clock.now += 1
    sync = RosterSync(store)
    sync.reset(SESSION)
    await sync.refresh(SESSION)
    assert [e.display_name for e in sync.roster] == ["Alice", "Bob", "Charlie"]
