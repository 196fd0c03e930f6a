import json

import pytest

from models.errors import ExpiredToken, MalformedToken, ScanRejected, SessionMismatch
from models.session_models import AttendanceToken
from services.attendance.token_validator import TokenValidator, parse_token

SESSION = "session-1700000000000-abc1234"
ISSUED = 1_700_000_000_000
EXPIRES = ISSUED + 30_000


def payload(session_id=SESSION, issued=ISSUED, expires=EXPIRES) -> str:
    return json.dumps({"sessionId": session_id, "timestamp": issued, "expiresAt": expires})


@pytest.fixture
def validator():
    return TokenValidator(clock=lambda: ISSUED)


def test_accepts_fresh_token_for_active_session(validator):
    token = validator.validate(payload(), SESSION)
    assert token == AttendanceToken(SESSION, ISSUED, EXPIRES)


@pytest.mark.parametrize("offset", [-1, 0])
def test_accepts_up_to_and_including_expiry(validator, offset):
    token = validator.validate(payload(), SESSION, now=EXPIRES + offset)
    assert token.expires_at == EXPIRES


def test_rejects_one_millisecond_after_expiry(validator):
    with pytest.raises(ExpiredToken) as info:
        validator.validate(payload(), SESSION, now=EXPIRES + 1)
    assert info.value.message == "This QR code has expired. Please scan the new one."


def test_uses_clock_when_now_is_omitted():
    late = TokenValidator(clock=lambda: EXPIRES + 5)
    with pytest.raises(ExpiredToken):
        late.validate(payload(), SESSION)


def test_rejects_token_from_another_session(validator):
    with pytest.raises(SessionMismatch):
        validator.validate(payload(session_id="session-1-other00"), SESSION)


def test_rejects_any_token_while_idle(validator):
    with pytest.raises(SessionMismatch) as info:
        validator.validate(payload(), None)
    assert "No attendance session is running" in info.value.message


def test_expiry_is_checked_before_session_binding(validator):
    with pytest.raises(ExpiredToken):
        validator.validate(payload(session_id="session-1-other00"), SESSION, now=EXPIRES + 1)


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        "",
        "[1, 2, 3]",
        "42",
        json.dumps({"timestamp": ISSUED, "expiresAt": EXPIRES}),
        json.dumps({"sessionId": "", "timestamp": ISSUED, "expiresAt": EXPIRES}),
        json.dumps({"sessionId": 7, "timestamp": ISSUED, "expiresAt": EXPIRES}),
        json.dumps({"sessionId": SESSION, "timestamp": "soon", "expiresAt": EXPIRES}),
        json.dumps({"sessionId": SESSION, "timestamp": ISSUED}),
        json.dumps({"sessionId": SESSION, "timestamp": True, "expiresAt": True}),
        '{"sessionId": "s", "timestamp": 1, "expiresAt": Infinity}',
        '{"sessionId": "s", "timestamp": NaN, "expiresAt": 5}',
        '{"sessionId": "s", "timestamp": -Infinity, "expiresAt": 5}',
        b"\xff\xfe\x00",
    ],
)
def test_rejects_malformed_payloads(validator, raw):
    with pytest.raises(MalformedToken):
        validator.validate(raw, SESSION)


def test_malformed_is_a_scan_rejection(validator):
    with pytest.raises(ScanRejected):
        validator.validate("{}", SESSION)


def test_parse_token_accepts_bytes_and_mappings():
    from_bytes = parse_token(payload().encode("utf-8"))
    from_dict = parse_token({"sessionId": SESSION, "timestamp": ISSUED, "expiresAt": float(EXPIRES)})
    assert from_bytes == from_dict
    assert isinstance(from_dict.expires_at, int)


def test_parse_token_ignores_extra_fields():
    raw = json.dumps({"sessionId": SESSION, "timestamp": ISSUED, "expiresAt": EXPIRES, "v": 2})
    assert parse_token(raw).session_id == SESSION
