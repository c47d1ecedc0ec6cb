from app.application.services import tract_service
from app.domain.models.download import Download
from app.domain.models.tract import Tract
from app.infrastructure.repositories.tract_repository import SQLAlchemyTractRepository


def test_anonymous_download_counts_and_logs(client, db, make_user, make_tract):
    tract = make_tract(make_user(role="uploader"))

    response = client.get(f"/api/tracts/{tract.id}/download", headers={"User-Agent": "pytest-agent"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"].startswith("attachment")
    assert 'filename="roman-road.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")

    db.refresh(tract)
    assert tract.download_count == 1
    rows = db.query(Download).filter(Download.tract_id == tract.id).all()
    assert len(rows) == 1
    assert rows[0].user_id is None
    assert rows[0].ip_address == "testclient"
    assert rows[0].user_agent == "pytest-agent"


def test_authenticated_download_records_user_and_forwarded_ip(client, db, make_user, make_tract, auth_headers):
    tract = make_tract(make_user(role="uploader"))
    reader = make_user(role="user")

    headers = {**auth_headers(reader), "X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
    assert client.get(f"/api/tracts/{tract.id}/download", headers=headers).status_code == 200

    row = db.query(Download).filter(Download.tract_id == tract.id).one()
    assert row.user_id == reader.id
    assert row.ip_address == "203.0.113.7"


def test_real_ip_header_is_used_without_forwarded_for(client, db, make_user, make_tract):
    tract = make_tract(make_user(role="uploader"))
    client.get(f"/api/tracts/{tract.id}/download", headers={"X-Real-IP": "198.51.100.4"})
    assert db.query(Download).one().ip_address == "198.51.100.4"


def test_repeated_downloads_are_not_deduplicated(client, db, make_user, make_tract):
    tract = make_tract(make_user(role="uploader"), download_count=4)
    for _ in range(3):
        assert client.get(f"/api/tracts/{tract.id}/download").status_code == 200

    db.refresh(tract)
    assert tract.download_count == 7
    assert db.query(Download).filter(Download.tract_id == tract.id).count() == 3


def test_missing_file_has_no_side_effects(client, db, make_user, make_tract):
    tract = make_tract(make_user(role="uploader"), with_file=False)

    response = client.get(f"/api/tracts/{tract.id}/download")

    assert response.status_code == 404
    assert response.json() == {"error": "PDF file not found. Please re-upload the tract."}
    db.refresh(tract)
    assert tract.download_count == 0
    assert db.query(Download).count() == 0


def test_unknown_tract_download_is_404(client):
    response = client.get("/api/tracts/424242/download")
    assert response.status_code == 404
    assert response.json() == {"error": "Tract not found"}


def test_filename_falls_back_to_title(client, make_user, make_tract):
    tract = make_tract(make_user(role="uploader"), title="Who is Jesus?", file_name="")
    response = client.get(f"/api/tracts/{tract.id}/download")
    assert 'filename="who_is_jesus_.pdf"' in response.headers["content-disposition"]


def test_preview_is_inline_and_not_counted(client, db, make_user, make_tract):
    tract = make_tract(make_user(role="uploader"))

    response = client.get(f"/api/tracts/{tract.id}/preview")

    assert response.status_code == 200
    assert response.headers["content-disposition"].startswith("inline")
    db.refresh(tract)
    assert tract.download_count == 0
    assert db.query(Download).count() == 0


def test_ledger_failure_still_counts(db, make_user, make_tract):
    tract = make_tract(make_user(role="uploader"))

    class BrokenLedger:
        def append(self, *args, **kwargs):
            raise RuntimeError("ledger unavailable")

        def rollback(self):
            pass

    tract_service.record_download(SQLAlchemyTractRepository(db, Tract), BrokenLedger(), tract.id, None, "127.0.0.1")

    db.refresh(tract)
    assert tract.download_count == 1
    assert db.query(Download).count() == 0
