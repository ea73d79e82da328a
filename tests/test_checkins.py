from __future__ import annotations

from datetime import datetime, timedelta

import pytest

import checkins
import db
import membership
from errors import NotFoundError, ValidationError

MORNING = datetime(2025, 7, 10, 7, 0, 0)


def test_check_in_and_out(make_member):
    m = make_member()
    c = checkins.check_in(m.id, "qr", "  locker 12 ", at=MORNING)
    assert c.check_in_time == "2025-07-10T07:00:00"
    assert c.entry_method == "qr"
    assert c.notes == "locker 12"
    assert checkins.currently_inside(checkins.list_check_ins()) == [c]

    closed = checkins.check_out(c.id, at=MORNING + timedelta(minutes=90))
    assert closed.check_out_time == "2025-07-10T08:30:00"
    assert checkins.currently_inside(checkins.list_check_ins()) == []
    assert checkins.visit_duration(closed.check_in_time, closed.check_out_time) == "1h 30m"


def test_second_check_out_is_rejected(make_member):
    c = checkins.check_in(make_member().id, at=MORNING)
    checkins.check_out(c.id, at=MORNING + timedelta(hours=1))
    with pytest.raises(ValidationError, match="already checked out"):
        checkins.check_out(c.id)
    assert checkins.get_check_in(c.id).check_out_time == "2025-07-10T08:00:00"


def test_only_active_members_check_in(make_member):
    m = make_member()
    membership.set_status(m.id, "frozen")
    with pytest.raises(ValidationError, match="frozen"):
        checkins.check_in(m.id)
    assert checkins.list_check_ins() == []


def test_unknown_member_or_check_in():
    with pytest.raises(NotFoundError):
        checkins.check_in("ghost")
    with pytest.raises(NotFoundError):
        checkins.check_out("ghost")


def test_bad_entry_method(make_member):
    with pytest.raises(ValidationError):
        checkins.check_in(make_member().id, "retina")


def test_list_since_and_limit(make_member):
    m = make_member()
    for days in (3, 2, 1, 0):
        checkins.check_in(m.id, at=MORNING - timedelta(days=days))
    recent = checkins.list_check_ins(since=MORNING - timedelta(days=1, hours=1))
    assert [c.check_in_time[:10] for c in recent] == ["2025-07-10", "2025-07-09"]
    assert len(checkins.list_check_ins(limit=3)) == 3


@pytest.mark.parametrize(
    "out,expected",
    [
        (None, None),
        ("2025-07-10T07:45:00", "45m"),
        ("2025-07-10T09:00:00", "2h"),
        ("2025-07-10T08:05:00", "1h 5m"),
        ("2025-07-10T06:00:00", None),
    ],
)
def test_visit_duration(out, expected):
    assert checkins.visit_duration("2025-07-10T07:00:00", out) == expected


def test_check_in_time_shares_row_clock(make_member, monkeypatch):
    m = make_member()
    monkeypatch.setattr(db, "now_iso", lambda: "2025-07-01T00:30:00")
    c = checkins.check_in(m.id)
    assert c.check_in_time == "2025-07-01T00:30:00"
    assert db.find_by_id("check_ins", c.id)["created_at"] == c.check_in_time
    assert checkins.check_out(c.id).check_out_time == "2025-07-01T00:30:00"


def test_row_stamps_use_local_time():
    stamp = datetime.fromisoformat(db.now_iso())
    assert abs(stamp - datetime.now()) < timedelta(seconds=5)
