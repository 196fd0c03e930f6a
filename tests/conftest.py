from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from dal.attendance_dal import SQLiteAttendanceStore
from models.attendance_record import AttendanceRecord, AttendeeIdentity, RecordOutcome
from utils.database_init import DEMO_ATTENDEES, AsyncDatabaseInitializer


async def drain(rounds: int = 25) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class VirtualClock:
    """Millisecond clock plus a sleep() that only wakes when time is advanced."""

    def __init__(self, start: int = 0) -> None:
        self.now = start
        self._sleepers: List[Tuple[int, asyncio.Future]] = []

    def __call__(self) -> int:
        return self.now

    @property
    def pending(self) -> int:
        return len(self._sleepers)

    async def sleep(self, seconds: float) -> None:
        entry = (self.now + int(seconds * 1000), asyncio.get_running_loop().create_future())
        self._sleepers.append(entry)
        try:
            await entry[1]
        finally:
            if entry in self._sleepers:
                self._sleepers.remove(entry)

    async def drain(self) -> None:
        await drain()

    async def advance_to(self, target: int) -> None:
        await drain()
        while True:
            due = [s for s in self._sleepers if s[0] <= target]
            if not due:
                break
            deadline = min(s[0] for s in due)
            self.now = deadline
            for entry in [s for s in due if s[0] == deadline]:
                self._sleepers.remove(entry)
                if not entry[1].done():
                    entry[1].set_result(None)
            await drain()
        self.now = target
        await drain()


class MemoryAttendanceStore:
    """Dict-backed store with the AttendanceStore contract; awaits never leave the loop."""

    backend = "memory"

    def __init__(self, clock, attendees=DEMO_ATTENDEES) -> None:
        self.clock = clock
        self.attendees: Dict[str, AttendeeIdentity] = {
            a[0]: AttendeeIdentity(id=a[0], display_name=a[1], roll_key=a[2]) for a in attendees
        }
        self.records: List[AttendanceRecord] = []
        self.list_calls = 0
        self.fail_reads = False

    async def record_if_absent(self, session_id: str, attendee_id: str) -> RecordOutcome:
        if any(r.session_id == session_id and r.attendee_id == attendee_id for r in self.records):
            return RecordOutcome.ALREADY_PRESENT
        self.records.append(AttendanceRecord(attendee_id, session_id, self.clock()))
        return RecordOutcome.INSERTED

    async def list_by_session(self, session_id: str) -> List[AttendanceRecord]:
        self.list_calls += 1
        if self.fail_reads:
            raise ConnectionError("store offline")
        out = []
        for r in self.records:
            if r.session_id == session_id:
                attendee = self.attendees.get(r.attendee_id)
                out.append(
                    AttendanceRecord(r.attendee_id, r.session_id, r.recorded_at, attendee.display_name if attendee else None)
                )
        return out

    async def get_attendee(self, attendee_id: str) -> Optional[AttendeeIdentity]:
        return self.attendees.get(attendee_id)

    async def find_attendee_by_roll_key(self, roll_key: str) -> Optional[AttendeeIdentity]:
        return next((a for a in self.attendees.values() if a.roll_key == roll_key.strip()), None)

    async def list_attendees(self) -> List[AttendeeIdentity]:
        return sorted(self.attendees.values(), key=lambda a: (a.display_name, a.id))


class FakeCapture:
    """Stand-in for cv2.VideoCapture that hands out prepared frames."""

    instances: List["FakeCapture"] = []

    def __init__(self, frames=None, opened: bool = True) -> None:
        self.frames = list(frames or [])
        self.opened = opened
        self.released = False
        FakeCapture.instances.append(self)

    def isOpened(self) -> bool:
        return self.opened

    def read(self):
        if not self.frames:
            return False, None
        if len(self.frames) == 1:
            return True, self.frames[0]
        return True, self.frames.pop(0)

    def release(self) -> None:
        self.released = True


@pytest.fixture
def clock():
    return VirtualClock(start=1_700_000_000_000)


@pytest.fixture
def memory_store(clock):
    return MemoryAttendanceStore(clock)


@pytest.fixture
async def sqlite_store(tmp_path, clock):
    initializer = AsyncDatabaseInitializer(tmp_path, seed_attendees=DEMO_ATTENDEES)
    await initializer.ensure_database()
    return SQLiteAttendanceStore(initializer, clock=clock)


@pytest.fixture
def fake_capture():
    FakeCapture.instances.clear()
    return FakeCapture
