from datetime import timedelta

from storefront.common.models import User, utcnow
from storefront.common.services import UserActivityMonitor

from conftest import make_user


def _statuses(session_factory):
    with session_factory() as session:
        return {u.email: u.status for u in session.query(User).all()}


def test_statuses_follow_last_activity(session_factory):
    now = utcnow()
    make_user(session_factory, email="recent@example.com", status="inactive", last_activity=now - timedelta(minutes=1))
    make_user(session_factory, email="stale@example.com", status="active", last_activity=now - timedelta(minutes=10))
    make_user(session_factory, email="never@example.com", status="active", last_activity=None)
    make_user(session_factory, email="steady@example.com", status="active", last_activity=now)

    changed = UserActivityMonitor(session_factory).update_statuses()

    assert changed == {"activated": 1, "deactivated": 2}
    assert _statuses(session_factory) == {
        "recent@example.com": "active",
        "stale@example.com": "inactive",
        "never@example.com": "inactive",
        "steady@example.com": "active",
    }


def test_second_run_changes_nothing(session_factory):
    make_user(session_factory, email="stale@example.com", status="active", last_activity=utcnow() - timedelta(hours=1))
    monitor = UserActivityMonitor(session_factory)

    monitor.update_statuses()

    assert monitor.update_statuses() == {"activated": 0, "deactivated": 0}
