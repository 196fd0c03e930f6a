from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from dal.supabase_attendance_dal import SupabaseAttendanceStore, _timestamp_ms
from models.attendance_record import RecordOutcome
from models.errors import StoreWriteFailure


class FakeQuery:
    """Records the PostgREST builder chain and answers from the owning client."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.filters = {}
        self.action = "select"
        self.payload = None
        self.columns = None

    def select(self, columns):
        self.columns = columns
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def limit(self, _n):
        return self

    def order(self, _column):
        return self

    def execute(self):
        self.client.calls.append(self)
        return self.client.answer(self)


class FakeSupabase:
    def __init__(self, rows=None, insert_error=None, select_error=None):
        self.rows = rows or {}
        self.insert_error = insert_error
        self.select_error = select_error
        self.calls = []

    def table(self, name):
        return FakeQuery(self, name)

    def answer(self, query):
        if query.action == "insert":
            if self.insert_error:
                raise self.insert_error
            return SimpleNamespace(data=[query.payload])
        if self.select_error:
            raise self.select_error
        rows = self.rows.get(query.table, [])
        return SimpleNamespace(
            data=[r for r in rows if all(r.get(k) == v for k, v in query.filters.items())]
        )


def unique_violation():
    return APIError({"code": "23505", "message": "duplicate key value violates unique constraint"})


async def test_inserts_when_no_row_exists():
    client = FakeSupabase()
    store = SupabaseAttendanceStore(client)
    assert await store.record_if_absent("s1", "uuid-1") is RecordOutcome.INSERTED
    insert = client.calls[-1]
    assert insert.table == "attendance"
    assert insert.payload == {"student_id": "uuid-1", "session_id": "s1"}


async def test_existing_row_is_already_present():
    client = FakeSupabase(rows={"attendance": [{"id": 1, "student_id": "uuid-1", "session_id": "s1"}]})
    store = SupabaseAttendanceStore(client)
    assert await store.record_if_absent("s1", "uuid-1") is RecordOutcome.ALREADY_PRESENT
    assert all(c.action == "select" for c in client.calls)


async def test_unique_violation_on_insert_is_already_present():
    store = SupabaseAttendanceStore(FakeSupabase(insert_error=unique_violation()))
    assert await store.record_if_absent("s1", "uuid-1") is RecordOutcome.ALREADY_PRESENT


@pytest.mark.parametrize(
    "error",
    [
        APIError({"code": "42501", "message": "permission denied"}),
        ConnectionError("network down"),
    ],
)
async def test_other_failures_raise_store_write_failure(error):
    store = SupabaseAttendanceStore(FakeSupabase(insert_error=error))
    with pytest.raises(StoreWriteFailure):
        await store.record_if_absent("s1", "uuid-1")


async def test_list_by_session_reads_joined_names():
    rows = [
        {"student_id": "uuid-2", "session_id": "s1", "created_at": "2024-01-01T10:00:05+00:00",
         "students": {"id": "uuid-2", "name": "Bob Williams"}},
        {"student_id": "uuid-1", "session_id": "s1", "created_at": "2024-01-01T10:00:01Z",
         "students": [{"id": "uuid-1", "name": "Alice Johnson"}]},
        {"student_id": "ghost", "session_id": "s1", "created_at": None, "students": None},
        {"student_id": "uuid-3", "session_id": "s2", "created_at": None, "students": None},
    ]
    store = SupabaseAttendanceStore(FakeSupabase(rows={"attendance": rows}), clock=lambda: 1_704_103_300_000)
    records = await store.list_by_session("s1")
    assert [(r.attendee_id, r.display_name) for r in records] == [
        ("uuid-1", "Alice Johnson"),
        ("uuid-2", "Bob Williams"),
        ("ghost", None),
    ]
    assert records[1].recorded_at - records[0].recorded_at == 4_000


async def test_read_errors_propagate():
    store = SupabaseAttendanceStore(FakeSupabase(select_error=ConnectionError("down")))
    with pytest.raises(ConnectionError):
        await store.list_by_session("s1")


async def test_attendee_lookups():
    students = [
        {"id": "uuid-1", "name": "Alice Johnson", "roll_number": "S001"},
        {"id": "uuid-2", "name": "Bob Williams", "roll_number": "S002"},
    ]
    store = SupabaseAttendanceStore(FakeSupabase(rows={"students": students}))
    assert (await store.get_attendee("uuid-2")).display_name == "Bob Williams"
    assert await store.get_attendee("uuid-9") is None
    assert (await store.find_attendee_by_roll_key(" S001")).id == "uuid-1"
    assert len(await store.list_attendees()) == 2


def test_requires_client():
    with pytest.raises(ValueError):
        SupabaseAttendanceStore(None)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 7),
        (1234, 1234),
        ("1970-01-01T00:00:01+00:00", 1000),
        ("1970-01-01T00:00:02Z", 2000),
        ("yesterday", 7),
    ],
)
def test_timestamp_ms(value, expected):
    assert _timestamp_ms(value, fallback=7) == expected
