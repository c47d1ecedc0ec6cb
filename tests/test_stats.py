from datetime import datetime, timedelta, timezone

import pytest

from app.application.services.stats_service import calculate_growth
from app.domain.models.download import Download


@pytest.mark.parametrize(
    "recent,previous,expected",
    [
        (0, 0, 0),
        (5, 0, 100),
        (3, 2, 50),
        (1, 3, -67),
        (41, 40, 3),
        (39, 40, -2),
        (2, 2, 0),
    ],
)
def test_calculate_growth(recent, previous, expected):
    assert calculate_growth(recent, previous) == expected


def _download(db, tract, days_ago, user=None):
    db.add(
        Download(
            tract_id=tract.id,
            user_id=user.id if user else None,
            ip_address="127.0.0.1",
            downloaded_at=datetime.now(timezone.utc) - timedelta(days=days_ago),
        )
    )
    db.commit()


def test_dashboard_stats(client, db, make_user, make_tract, auth_headers):
    admin = make_user(role="admin")
    uploader = make_user(role="uploader")
    reader = make_user(role="user", name="Reader")

    popular = make_tract(uploader, title="Popular", download_count=10)
    modest = make_tract(uploader, title="Modest", download_count=3)
    make_tract(uploader, title="Waiting", status="pending", download_count=50)

    _download(db, popular, days_ago=10)
    _download(db, popular, days_ago=3)
    _download(db, popular, days_ago=1, user=reader)
    _download(db, modest, days_ago=2)

    response = client.get("/api/admin/stats", headers=auth_headers(admin))
    assert response.status_code == 200
    stats = response.json()["stats"]

    assert stats["total_tracts"] == 3
    assert stats["approved_tracts"] == 2
    assert stats["pending_review"] == 1
    assert stats["total_users"] == 3
    assert stats["total_downloads"] == 4
    assert stats["monthly_growth"] == {"tracts": 100, "users": 100, "downloads": 100}

    # Pending tracts never rank, however often they were downloaded
    assert [t["title"] for t in stats["top_tracts"]] == ["Popular", "Modest"]
    assert stats["top_tracts"][0]["downloads"] == 10
    assert stats["top_tracts"][0]["trend"] == "up"
    assert stats["top_tracts"][0]["change"] == 100

    recent = stats["recent_downloads"]
    assert [(r["tract_title"], r["download_count"]) for r in recent] == [("Popular", 2), ("Modest", 1)]
    assert recent[0]["last_downloaded_by"] == "Reader"
    assert recent[1]["last_downloaded_by"] == "Anonymous"

    uploads = {u["email"]: u["uploads"] for u in stats["recent_users"]}
    assert uploads[uploader.email] == 3
    assert uploads[reader.email] == 0


def test_week_over_week_decline(client, db, make_user, make_tract, auth_headers):
    admin = make_user(role="admin")
    tract = make_tract(make_user(role="uploader"), download_count=3)
    for days_ago in (8, 9, 10):
        _download(db, tract, days_ago=days_ago)
    _download(db, tract, days_ago=1)

    top = client.get("/api/admin/stats", headers=auth_headers(admin)).json()["stats"]["top_tracts"][0]
    assert top["trend"] == "down"
    assert top["change"] == 67


def test_approver_may_view_stats(client, make_user, auth_headers):
    approver = make_user(role="approver")
    assert client.get("/api/admin/stats", headers=auth_headers(approver)).status_code == 200


def test_uploader_may_not_view_stats(client, make_user, auth_headers):
    uploader = make_user(role="uploader")
    response = client.get("/api/admin/stats", headers=auth_headers(uploader))
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden - Admin or Approver access required"}


def test_stats_reflect_review_immediately(client, make_user, make_tract, auth_headers):
    admin = make_user(role="admin")
    tract = make_tract(make_user(role="uploader"), status="pending")

    before = client.get("/api/admin/stats", headers=auth_headers(admin)).json()["stats"]
    client.patch("/api/admin/pending-tracts", json={"tract_id": tract.id, "status": "approved"}, headers=auth_headers(admin))
    after = client.get("/api/admin/stats", headers=auth_headers(admin)).json()["stats"]

    assert (before["pending_review"], before["approved_tracts"]) == (1, 0)
    assert (after["pending_review"], after["approved_tracts"]) == (0, 1)
