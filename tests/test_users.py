import pytest
from sqlalchemy import func, select

from app.domain.models.category import Category, Tag
from app.domain.models.download import Download
from app.domain.models.tract import Tract, tract_categories, tract_tags
from app.domain.models.user import User
from app.infrastructure.mail_api import MailAPIClient


@pytest.fixture
def sent_mail(monkeypatch):
    """Capture reset mails instead of calling the relay."""
    sent = []

    async def fake_send_password_reset(self, to, reset_link, expires_minutes):
        sent.append((to, reset_link, expires_minutes))
        return True

    monkeypatch.setattr(MailAPIClient, "send_password_reset", fake_send_password_reset)
    return sent


# Admin user management

def test_admin_lists_users_newest_first(client, make_user, auth_headers):
    admin = make_user(role="admin", email="admin@example.com")
    make_user(email="newest@example.com")

    response = client.get("/api/admin/users", headers=auth_headers(admin))
    assert response.status_code == 200
    emails = [u["email"] for u in response.json()["users"]]
    assert emails == ["newest@example.com", "admin@example.com"]
    assert "password_hash" not in response.json()["users"][0]


def test_admin_user_listing_paginates(client, make_user, auth_headers):
    admin = make_user(role="admin", email="admin@example.com")
    make_user(email="middle@example.com")
    make_user(email="newest@example.com")

    response = client.get("/api/admin/users", params={"skip": 1, "limit": 1}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert [u["email"] for u in response.json()["users"]] == ["middle@example.com"]


def test_non_admin_cannot_list_users(client, make_user, auth_headers):
    approver = make_user(role="approver")
    assert client.get("/api/admin/users", headers=auth_headers(approver)).status_code == 403


def test_user_detail_has_counts(client, db, make_user, make_tract, auth_headers):
    admin = make_user(role="admin")
    uploader = make_user(role="uploader")
    tract = make_tract(uploader)
    db.add(Download(tract_id=tract.id, user_id=uploader.id, ip_address="127.0.0.1"))
    db.commit()

    user = client.get(f"/api/admin/users/{uploader.id}", headers=auth_headers(admin)).json()["user"]
    assert user["tracts_count"] == 1
    assert user["downloads_count"] == 1


def test_admin_changes_role(client, db, make_user, auth_headers):
    admin = make_user(role="admin")
    user = make_user(role="user")

    response = client.patch(f"/api/admin/users/{user.id}", json={"role": "approver"}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "approver"

    # The very next request sees the new role
    assert client.get("/api/admin/pending-tracts", headers=auth_headers(user)).status_code == 200


def test_admin_patch_rejects_unknown_role(client, make_user, auth_headers):
    admin = make_user(role="admin")
    user = make_user()
    response = client.patch(f"/api/admin/users/{user.id}", json={"role": "owner"}, headers=auth_headers(admin))
    assert response.status_code == 400


def test_admin_patch_rejects_taken_email(client, make_user, auth_headers):
    admin = make_user(role="admin")
    make_user(email="taken@example.com")
    user = make_user()
    response = client.patch(
        f"/api/admin/users/{user.id}", json={"email": "taken@example.com"}, headers=auth_headers(admin)
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered"}


def test_admin_cannot_delete_self(client, db, make_user, auth_headers):
    admin = make_user(role="admin")
    response = client.delete(f"/api/admin/users/{admin.id}", headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot delete your own account"}
    db.expire_all()
    assert db.get(User, admin.id) is not None


def test_delete_user_cascades_tracts_but_keeps_others_history(
    client, db, storage, make_user, make_tract, auth_headers
):
    admin = make_user(role="admin")
    author = make_user(role="uploader")
    other_author = make_user(role="uploader")
    doomed = make_tract(author, title="Doomed")
    survivor = make_tract(other_author, title="Survivor")
    doomed_path = storage.resolve(doomed.file_url)

    db.add_all(
        [
            Download(tract_id=doomed.id, user_id=other_author.id, ip_address="10.0.0.1"),
            Download(tract_id=survivor.id, user_id=author.id, ip_address="10.0.0.2"),
            Download(tract_id=survivor.id, user_id=None, ip_address="10.0.0.3"),
        ]
    )
    evangelism = db.query(Category).filter_by(slug="evangelism").one()
    grace = Tag(name="grace", slug="grace")
    for linked in (doomed, survivor):
        linked.categories.append(evangelism)
        linked.tags.append(grace)
    db.commit()
    doomed_id, survivor_id, author_id = doomed.id, survivor.id, author.id

    response = client.delete(f"/api/admin/users/{author_id}", headers=auth_headers(admin))
    assert response.status_code == 200

    db.expire_all()
    assert db.get(User, author_id) is None
    assert db.get(Tract, doomed_id) is None
    assert db.query(Download).filter(Download.tract_id == doomed_id).count() == 0
    assert not doomed_path.exists()

    # Downloads of surviving tracts stay, with the deleted user nulled out
    survivor_rows = db.query(Download).filter(Download.tract_id == survivor_id).all()
    assert len(survivor_rows) == 2
    assert all(row.user_id is None for row in survivor_rows)

    # Link rows of the cascaded tract go with it; categories and tags stay
    assert db.execute(select(func.count()).select_from(tract_categories)).scalar() == 1
    assert db.execute(select(func.count()).select_from(tract_tags)).scalar() == 1
    assert db.query(Category).count() == 6
    assert [t.name for t in db.get(Tract, survivor_id).tags] == ["grace"]


def test_delete_unknown_user_is_404(client, make_user, auth_headers):
    admin = make_user(role="admin")
    assert client.delete("/api/admin/users/9999", headers=auth_headers(admin)).status_code == 404


def test_reset_password_mails_link_and_hides_token(client, make_user, auth_headers, sent_mail):
    admin = make_user(role="admin")
    user = make_user(email="locked-out@example.com")

    response = client.post(f"/api/admin/users/{user.id}/reset-password", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["delivered"] is True
    assert len(sent_mail) == 1
    to, link, _ = sent_mail[0]
    assert to == "locked-out@example.com"
    token = link.split("token=", 1)[1]
    assert token not in response.text

    # The mailed token works exactly like a self-service reset
    redeem = client.post("/api/auth/reset-password", json={"token": token, "new_password": "fresh-password"})
    assert redeem.status_code == 200


def test_reset_password_without_relay_still_succeeds(client, make_user, auth_headers):
    # MAIL_API_URL is empty under test, so the real client declines to send
    admin = make_user(role="admin")
    user = make_user()

    response = client.post(f"/api/admin/users/{user.id}/reset-password", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["delivered"] is False


def test_reset_password_requires_admin(client, make_user, auth_headers, sent_mail):
    approver = make_user(role="approver")
    user = make_user()
    response = client.post(f"/api/admin/users/{user.id}/reset-password", headers=auth_headers(approver))
    assert response.status_code == 403
    assert sent_mail == []


# Profile

def test_profile_read_and_rename(client, make_user, make_tract, auth_headers):
    user = make_user(role="uploader", name="Old Name")
    make_tract(user)
    headers = auth_headers(user)

    profile = client.get("/api/profile", headers=headers).json()["user"]
    assert profile["name"] == "Old Name"
    assert (profile["tracts_count"], profile["downloads_count"]) == (1, 0)

    response = client.patch("/api/profile", json={"name": "New Name", "role": "admin"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["user"]["name"] == "New Name"
    assert response.json()["user"]["role"] == "uploader"


def test_profile_requires_login(client):
    assert client.get("/api/profile").status_code == 401
