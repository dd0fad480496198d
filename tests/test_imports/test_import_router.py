"""Tests for the import API routes."""

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.db.models import ProxyHost


class TestImportApi:
    """Tests for /api/import endpoints."""

    def test_health(self, client: TestClient):
        """Test the health endpoint."""
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": "0.1.0"}

    def test_upload_returns_preview(
        self, client: TestClient, existing_host: ProxyHost, caddyfile: str
    ):
        """Test uploading text opens a session and returns the preview."""
        response = client.post(
            "/api/import/upload", json={"content": caddyfile, "filename": "Caddyfile"}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["session"]["state"] == "reviewing"
        assert data["session"]["candidate_count"] == 2
        assert data["session"]["conflict_count"] == 1
        assert list(data["conflicts"]) == ["app.local.dev"]
        assert data["conflicts"]["app.local.dev"]["existing"]["id"] == existing_host.id
        assert [c["status"] for c in data["candidates"]] == ["conflict", "new"]

    def test_upload_file(self, client: TestClient, caddyfile: str):
        """Test multipart upload."""
        response = client.post(
            "/api/import/upload-file",
            files={"file": ("Caddyfile", caddyfile.encode(), "text/plain")},
        )

        assert response.status_code == 201
        assert response.json()["session"]["source_file"] == "Caddyfile"

    def test_upload_while_reviewing(self, client: TestClient, caddyfile: str):
        """Test a second upload is refused with 409."""
        first = client.post("/api/import/upload", json={"content": caddyfile})
        response = client.post("/api/import/upload", json={"content": caddyfile})

        assert response.status_code == 409
        assert response.json()["detail"]["session_id"] == first.json()["session"]["id"]

    def test_upload_fatal_parse(self, client: TestClient):
        """Test a document with no usable block is a 400 with the errors."""
        response = client.post("/api/import/upload", json={"content": "broken {\n}\n"})

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert len(detail["errors"]) == 1
        assert detail["session_id"]

        status = client.get("/api/import/status").json()
        assert status["has_pending"] is False
        assert status["last_session"]["state"] == "failed"

    def test_upload_too_large(self, client: TestClient):
        """Test the configured size limit."""
        content = "#" * (1024 * 1024 + 1)
        response = client.post("/api/import/upload", json={"content": content})
        assert response.status_code == 413

    def test_upload_empty_content(self, client: TestClient):
        """Test empty content fails request validation."""
        response = client.post("/api/import/upload", json={"content": ""})
        assert response.status_code == 422

    def test_status_and_preview_without_session(self, client: TestClient):
        """Test reads are empty but successful with nothing to review."""
        status = client.get("/api/import/status")
        assert status.status_code == 200
        assert status.json()["has_pending"] is False

        preview = client.get("/api/import/preview")
        assert preview.status_code == 200
        assert preview.json()["candidates"] == []
        assert preview.json()["session"] is None

    def test_commit_unresolved(
        self, client: TestClient, existing_host: ProxyHost, caddyfile: str
    ):
        """Test commit with missing resolutions is a 422 naming the domains."""
        client.post("/api/import/upload", json={"content": caddyfile})

        response = client.post("/api/import/commit", json={"resolutions": {}})

        assert response.status_code == 422
        assert response.json()["detail"]["domains"] == ["app.local.dev"]
        assert client.get("/api/import/status").json()["session"]["state"] == "reviewing"

    def test_commit_overwrite(
        self, client: TestClient, db: Session, existing_host: ProxyHost, caddyfile: str
    ):
        """Test a full upload, review, commit round."""
        upload = client.post("/api/import/upload", json={"content": caddyfile}).json()

        response = client.post(
            "/api/import/commit",
            json={
                "resolutions": {"app.local.dev": "overwrite"},
                "session_id": upload["session"]["id"],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["session"]["state"] == "completed"
        assert [a["action"] for a in data["result"]["applied"]] == ["updated", "created"]
        assert data["result"]["applied"][0]["host_id"] == existing_host.id

        db.expire_all()
        assert db.get(ProxyHost, existing_host.id).forward_port == 8080

        status = client.get("/api/import/status").json()
        assert status["has_pending"] is False
        assert status["last_session"]["commit_result"]["failed"] == []

    def test_commit_invalid_resolution(self, client: TestClient, caddyfile: str):
        """Test unknown resolution values are rejected by validation."""
        client.post("/api/import/upload", json={"content": caddyfile})
        response = client.post(
            "/api/import/commit", json={"resolutions": {"app.local.dev": "merge"}}
        )
        assert response.status_code == 422

    def test_commit_without_session(self, client: TestClient):
        """Test commit with nothing under review is a 404."""
        response = client.post("/api/import/commit", json={"resolutions": {}})
        assert response.status_code == 404

    def test_cancel(self, client: TestClient, caddyfile: str):
        """Test cancel via POST and DELETE."""
        client.post("/api/import/upload", json={"content": caddyfile})

        response = client.post("/api/import/cancel")
        assert response.status_code == 200
        assert response.json()["cancelled"] is True
        assert response.json()["session"]["state"] == "cancelled"

        response = client.delete("/api/import/cancel")
        assert response.status_code == 200
        assert response.json() == {"cancelled": False, "session": None}

        assert client.get("/api/import/status").json()["has_pending"] is False


class TestStartup:
    """Tests for the startup hooks in app.main."""

    def test_run_mounted_import_skipped_without_path(self, monkeypatch, db: Session):
        """Test nothing is imported when IMPORT_CADDYFILE is empty."""
        import app.main as main

        calls = []
        monkeypatch.setattr(main.settings, "import_caddyfile", "")
        monkeypatch.setattr(main, "import_mounted_caddyfile", lambda *args: calls.append(args))

        main.run_mounted_import()

        assert calls == []

    def test_run_mounted_import_uses_configured_path(self, monkeypatch, db: Session):
        """Test the configured Caddyfile is imported with a fresh session."""
        import app.main as main

        calls = []
        monkeypatch.setattr(main.settings, "import_caddyfile", "/etc/caddy/Caddyfile")
        monkeypatch.setattr(main, "SessionLocal", lambda: db)
        monkeypatch.setattr(
            main,
            "import_mounted_caddyfile",
            lambda session, settings: calls.append((session, settings.import_caddyfile)),
        )

        main.run_mounted_import()

        assert calls == [(db, "/etc/caddy/Caddyfile")]
