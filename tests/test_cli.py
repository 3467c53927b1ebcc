"""Tests for CLI commands - configure, login, records and upload."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from recordsync.client.cache import LocalCache
from recordsync.client.cli import cli, load_config
from recordsync.client.cli.documents import PROFILE_IMAGE_CACHE_KEY
from recordsync.core.config import API_KEY_ENV_VAR, URL_ENV_VAR

REST_URL = re.compile(r"http://test/rest/v1/.*")
STORAGE_URL = re.compile(r"http://test/storage/v1/.*")


def token_response(user_id: str = "user-1") -> dict[str, Any]:
    """Build a token endpoint response body."""
    return {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "expires_in": 3600,
        "user": {"id": user_id, "email": "ann@example.com"},
    }


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at a temporary home."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(URL_ENV_VAR, raising=False)
    monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)
    return tmp_path


@pytest.fixture
def configured(runner: CliRunner) -> None:
    """Configure the backend."""
    result = runner.invoke(cli, ["configure", "--url", "http://test/", "--api-key", "anon"])
    assert result.exit_code == 0


@pytest.fixture
def logged_in(runner: CliRunner, configured: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
    """Configure the backend and sign in."""
    httpx_mock.add_response(method="POST", url=re.compile(r".*/auth/v1/token.*"), json=token_response())
    result = runner.invoke(
        cli, ["login", "--email", "ann@example.com", "--password", "secret"]
    )
    assert result.exit_code == 0, result.output


class TestConfigure:
    """Tests for 'recordsync configure'."""

    def test_configure_saves_config(self, runner: CliRunner, home: Path) -> None:
        """Should store URL and key in ~/.recordsync/config.json."""
        result = runner.invoke(
            cli, ["configure", "--url", "https://abc.supabase.co/", "--api-key", "anon"]
        )

        assert result.exit_code == 0
        config = json.loads((home / ".recordsync" / "config.json").read_text())
        assert config == {"url": "https://abc.supabase.co", "api_key": "anon"}
        assert load_config() == config

    def test_unconfigured_commands_fail(self, runner: CliRunner) -> None:
        """Commands needing the backend should explain how to configure it."""
        result = runner.invoke(cli, ["pull", "education"])

        assert result.exit_code != 0
        assert "configure" in result.output


class TestAccount:
    """Tests for login, logout and whoami."""

    def test_login(self, runner: CliRunner, logged_in: None, home: Path) -> None:
        """Login should persist the session in the local cache."""
        assert (home / ".recordsync" / "cache.db").exists()

    def test_login_rejected(self, runner: CliRunner, configured: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Wrong credentials should fail with a clear message."""
        httpx_mock.add_response(
            method="POST", status_code=400, json={"error_description": "Invalid login credentials"}
        )

        result = runner.invoke(cli, ["login", "--email", "ann@example.com", "--password", "nope"])

        assert result.exit_code == 1
        assert "Invalid email or password" in result.output

    def test_whoami(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """whoami should show the server's view of the user."""
        httpx_mock.add_response(
            method="GET",
            json={"id": "user-1", "email": "ann@example.com", "user_metadata": {"full_name": "Ann"}},
        )

        result = runner.invoke(cli, ["whoami"])

        assert result.exit_code == 0
        assert "ann@example.com (user-1)" in result.output
        assert "Name: Ann" in result.output

    def test_logout(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """logout should end the session."""
        httpx_mock.add_response(method="POST", url="http://test/auth/v1/logout", status_code=204)

        result = runner.invoke(cli, ["logout"])
        assert result.exit_code == 0
        assert "Signed out." in result.output

        result = runner.invoke(cli, ["whoami"])
        assert result.exit_code == 1
        assert "Not signed in." in result.output


class TestRecordCommands:
    """Tests for the record commands."""

    def test_categories(self, runner: CliRunner) -> None:
        """Should list every category."""
        result = runner.invoke(cli, ["categories"])

        assert result.exit_code == 0
        assert "education" in result.output
        assert "maintenance_records" in result.output

    def test_unknown_category(self, runner: CliRunner, configured: None) -> None:
        """Should reject unknown categories."""
        result = runner.invoke(cli, ["list", "pets"])

        assert result.exit_code == 2
        assert "Unknown category" in result.output

    def test_add_requires_login(self, runner: CliRunner, configured: None) -> None:
        """Mutating commands need a signed-in user."""
        result = runner.invoke(cli, ["add", "education", "degree=BSc"])

        assert result.exit_code == 1
        assert "User not authenticated" in result.output

    def test_add(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """add should insert the record for the owner and report Saved."""
        httpx_mock.add_response(method="GET", url=REST_URL, json=[])
        httpx_mock.add_response(
            method="POST",
            url=REST_URL,
            status_code=201,
            json=[{"id": "srv-1", "user_id": "user-1", "degree": "BSc"}],
        )

        result = runner.invoke(cli, ["add", "education", "degree=BSc", "field=Physics"])

        assert result.exit_code == 0, result.output
        assert "Saved" in result.output
        assert "srv-1" in result.output

        fetch, insert = httpx_mock.get_requests()[1:]
        assert fetch.url.params["user_id"] == "eq.user-1"
        assert fetch.headers["Authorization"] == "Bearer access-1"
        body = json.loads(insert.content)
        assert body["degree"] == "BSc"
        assert body["field"] == "Physics"
        assert body["user_id"] == "user-1"
        assert "id" not in body
        assert "created_at" not in body

    def test_add_unknown_field(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Unknown fields are rejected before anything is sent."""
        result = runner.invoke(cli, ["add", "education", "shoe_size=42"])

        assert result.exit_code == 1
        assert "shoe_size" in result.output
        assert len(httpx_mock.get_requests()) == 1

    def test_add_bad_assignment(self, runner: CliRunner, logged_in: None) -> None:
        """Arguments must look like field=value."""
        result = runner.invoke(cli, ["add", "education", "BSc"])

        assert result.exit_code == 2
        assert "field=value" in result.output

    def test_add_failure_reports_error(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A rejected insert should report the failed save."""
        httpx_mock.add_response(method="GET", url=REST_URL, json=[])
        httpx_mock.add_response(
            method="POST", url=REST_URL, status_code=400, json={"message": "permission denied"}
        )

        result = runner.invoke(cli, ["add", "education", "degree=BSc"])

        assert result.exit_code == 1
        assert "Save failed" in result.output

    def test_pull_and_list(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """pull fills the cache; list shows it without a request."""
        httpx_mock.add_response(
            method="GET",
            url=REST_URL,
            json=[
                {"id": "e1", "user_id": "user-1", "degree": "BSc"},
                {"id": "e2", "user_id": "user-1", "degree": "MSc"},
            ],
        )

        result = runner.invoke(cli, ["pull", "education"])
        assert result.exit_code == 0, result.output
        assert "2 education record(s)" in result.output
        assert "Saved" in result.output

        result = runner.invoke(cli, ["list", "education"])
        assert result.exit_code == 0
        assert "e1  degree=BSc" in result.output
        assert "e2  degree=MSc" in result.output
        assert len(httpx_mock.get_requests()) == 2

    def test_edit(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """edit should update the record filtered by id and owner."""
        httpx_mock.add_response(
            method="GET", url=REST_URL, json=[{"id": "e1", "user_id": "user-1", "degree": "BSc"}]
        )
        httpx_mock.add_response(method="PATCH", url=REST_URL, json=[{"id": "e1"}])

        result = runner.invoke(cli, ["edit", "education", "e1", "degree=MSc"])

        assert result.exit_code == 0, result.output
        assert "Updated e1" in result.output
        update = httpx_mock.get_requests()[-1]
        assert update.url.params["id"] == "eq.e1"
        assert update.url.params["user_id"] == "eq.user-1"
        assert json.loads(update.content)["degree"] == "MSc"

    def test_edit_missing_record(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """edit of an unknown id fails without writing."""
        httpx_mock.add_response(method="GET", url=REST_URL, json=[])

        result = runner.invoke(cli, ["edit", "education", "e9", "degree=MSc"])

        assert result.exit_code == 1
        assert "No education record with id e9" in result.output

    def test_delete(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """delete should remove the record remotely."""
        httpx_mock.add_response(
            method="GET", url=REST_URL, json=[{"id": "e1", "user_id": "user-1"}]
        )
        httpx_mock.add_response(method="DELETE", url=REST_URL, json=[{"id": "e1"}])

        result = runner.invoke(cli, ["delete", "education", "e1"])

        assert result.exit_code == 0, result.output
        assert "Deleted e1" in result.output

    def test_delete_not_owned(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Deleting an id the user does not own reports not found."""
        httpx_mock.add_response(method="GET", url=REST_URL, json=[])
        httpx_mock.add_response(method="DELETE", url=REST_URL, json=[])

        result = runner.invoke(cli, ["delete", "education", "theirs"])

        assert result.exit_code == 1
        assert "No education record with id theirs" in result.output


class TestUpload:
    """Tests for 'recordsync upload'."""

    def test_upload(self, runner: CliRunner, logged_in: None, httpx_mock, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        """upload should store the file and add a document record."""
        document = tmp_path / "tax return.pdf"
        document.write_bytes(b"%PDF-1.4 " + b"x" * 2048)
        httpx_mock.add_response(method="POST", url=STORAGE_URL, json={"Key": "k"})
        httpx_mock.add_response(method="GET", url=REST_URL, json=[])
        httpx_mock.add_response(
            method="POST",
            url=REST_URL,
            status_code=201,
            json=[{"id": "d1", "user_id": "user-1", "name": "tax return.pdf"}],
        )

        result = runner.invoke(cli, ["upload", str(document), "--category", "Financial"])

        assert result.exit_code == 0, result.output
        assert "Uploaded tax return.pdf (2.0 KB)" in result.output
        assert "Saved" in result.output

        upload, _, insert = httpx_mock.get_requests()[1:]
        assert re.search(r"/object/user_documents/user-1/\d+_tax_return\.pdf$", upload.url.path)
        assert upload.headers["Content-Type"] == "application/pdf"
        body = json.loads(insert.content)
        assert body["name"] == "tax return.pdf"
        assert body["category"] == "Financial"
        assert body["file_size"] == "2.0 KB"
        assert body["file_type"] == "application/pdf"
        assert body["file_url"].startswith("http://test/storage/v1/object/public/user_documents/")


class TestDocumentDelete:
    """Tests for 'recordsync delete documents'."""

    FILE_URL = "http://test/storage/v1/object/public/user_documents/user-1/1700000000000_tax.pdf"

    def test_delete_removes_stored_file(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Deleting a document removes its file before the row."""
        httpx_mock.add_response(
            method="GET",
            url=REST_URL,
            json=[{"id": "d1", "user_id": "user-1", "name": "tax.pdf", "file_url": self.FILE_URL}],
        )
        httpx_mock.add_response(method="DELETE", url=STORAGE_URL, json=[{"name": "tax.pdf"}])
        httpx_mock.add_response(method="DELETE", url=REST_URL, json=[{"id": "d1"}])

        result = runner.invoke(cli, ["delete", "documents", "d1"])

        assert result.exit_code == 0, result.output
        assert "Deleted d1" in result.output
        _, remove, delete = httpx_mock.get_requests()[1:]
        assert remove.url.path == "/storage/v1/object/user_documents"
        assert json.loads(remove.content) == {"prefixes": ["user-1/1700000000000_tax.pdf"]}
        assert delete.url.params["id"] == "eq.d1"

    def test_file_removal_failure_still_deletes_row(self, runner: CliRunner, logged_in: None, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A failed file removal is a warning; the record is deleted anyway."""
        httpx_mock.add_response(
            method="GET",
            url=REST_URL,
            json=[{"id": "d1", "user_id": "user-1", "file_url": self.FILE_URL}],
        )
        httpx_mock.add_response(
            method="DELETE", url=STORAGE_URL, status_code=500, json={"message": "storage down"}
        )
        httpx_mock.add_response(method="DELETE", url=REST_URL, json=[{"id": "d1"}])

        result = runner.invoke(cli, ["delete", "documents", "d1"])

        assert result.exit_code == 0, result.output
        assert "Warning: Could not remove stored file" in result.output
        assert "storage down" in result.output
        assert "Deleted d1" in result.output


class TestProfileImage:
    """Tests for 'recordsync profile-image'."""

    def test_profile_image(self, runner: CliRunner, logged_in: None, httpx_mock, home: Path) -> None:  # type: ignore[no-untyped-def]
        """Should upload to the profiles bucket and remember the URL."""
        image = home / "me.png"
        image.write_bytes(b"\x89PNG\r\n\x1a\n")
        httpx_mock.add_response(method="POST", url=STORAGE_URL, json={"Key": "k"})

        result = runner.invoke(cli, ["profile-image", str(image)])

        assert result.exit_code == 0, result.output
        upload = httpx_mock.get_requests()[-1]
        assert re.search(r"/object/user_profiles/user-1/profile-\d+\.png$", upload.url.path)
        assert upload.headers["Content-Type"] == "image/png"
        assert "Profile image uploaded: http://test/storage/v1/object/public/user_profiles/user-1/profile-" in result.output

        cache = LocalCache(home / ".recordsync" / "cache.db")
        try:
            assert cache.read(PROFILE_IMAGE_CACHE_KEY, None).endswith(".png")
        finally:
            cache.close()

    def test_profile_image_must_be_image(self, runner: CliRunner, logged_in: None, httpx_mock, home: Path) -> None:  # type: ignore[no-untyped-def]
        """Non-image files are rejected before uploading."""
        notes = home / "notes.txt"
        notes.write_text("hello")

        result = runner.invoke(cli, ["profile-image", str(notes)])

        assert result.exit_code == 1
        assert "is not an image" in result.output
        assert len(httpx_mock.get_requests()) == 1
