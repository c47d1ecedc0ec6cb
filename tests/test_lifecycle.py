"""End-to-end walk through upload, review and public download."""

import json

from app.domain.models.download import Download
from app.domain.models.tract import Tract


def test_grace_from_upload_to_first_download(client, db, make_user, auth_headers):
    uploader = make_user(role="uploader")
    approver = make_user(role="approver")
    pdf = b"%PDF-1.7\n" + b"0" * (2 * 1024 * 1024 - 16) + b"\n%%EOF\n"

    upload = client.post(
        "/api/tracts/upload",
        data={
            "title": "Grace",
            "description": "Saved by grace through faith",
            "category": "evangelism",
            "denomination": "Reformed",
            "language": "en",
            "tags": json.dumps(["grace"]),
        },
        files={"file": ("grace.pdf", pdf, "application/pdf")},
        headers=auth_headers(uploader),
    )
    assert upload.status_code == 200
    tract_id = upload.json()["tract"]["id"]

    tract = db.get(Tract, tract_id)
    assert (tract.status, tract.download_count, tract.file_size) == ("pending", 0, len(pdf))
    assert "Grace" not in [t["title"] for t in client.get("/api/tracts").json()["tracts"]]

    review = client.patch(
        "/api/admin/pending-tracts",
        json={"tract_id": tract_id, "status": "approved"},
        headers=auth_headers(approver),
    )
    assert review.status_code == 200
    assert "Grace" in [t["title"] for t in client.get("/api/tracts", params={"status": "approved"}).json()["tracts"]]

    download = client.get(f"/api/tracts/{tract_id}/download")
    assert download.status_code == 200
    assert download.content == pdf

    db.refresh(tract)
    assert tract.download_count == 1
    rows = db.query(Download).filter(Download.tract_id == tract_id).all()
    assert len(rows) == 1
    assert rows[0].user_id is None


def test_rejected_tract_stays_out_of_public_listing(client, make_user, make_tract, auth_headers):
    tract = make_tract(make_user(role="uploader"), title="Not This One", status="pending")
    approver = make_user(role="approver")

    review = client.patch(
        "/api/admin/pending-tracts",
        json={"tract_id": tract.id, "status": "rejected"},
        headers=auth_headers(approver),
    )
    assert review.json()["message"] == "Tract rejected successfully"

    approved = client.get("/api/tracts", params={"status": "approved"}).json()["tracts"]
    assert "Not This One" not in [t["title"] for t in approved]
    rejected = client.get("/api/tracts", params={"status": "rejected"}).json()["tracts"]
    assert [t["title"] for t in rejected] == ["Not This One"]


def test_plain_user_cannot_patch_tract(client, db, make_user, make_tract, auth_headers):
    tract = make_tract(make_user(role="uploader"), title="Unchanged")
    user = make_user(role="user")

    response = client.patch("/api/tracts", json={"id": tract.id, "title": "Hijacked"}, headers=auth_headers(user))

    assert response.status_code == 403
    db.refresh(tract)
    assert tract.title == "Unchanged"
