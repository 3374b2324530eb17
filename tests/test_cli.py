"""Unit tests for the neocities CLI commands."""

import hashlib
import json
from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from pyneocities.api import NeocitiesClient
from pyneocities.cli import main
from pyneocities.exceptions import (
    NeocitiesAPIError,
    NeocitiesAuthenticationError,
    NeocitiesFileExistsError,
)


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_client():
    """Patch the client class used by the CLI and return its instance."""
    with patch("pyneocities.cli.NeocitiesClient") as mock_client_class:
        client = Mock(spec=NeocitiesClient)
        client.file_url.side_effect = NeocitiesClient.file_url
        client.upload_hash.side_effect = lambda hashes: dict.fromkeys(hashes, False)
        mock_client_class.return_value = client
        yield client


@pytest.fixture
def mock_config(tmp_path):
    """Mock the config used by the CLI."""
    with patch("pyneocities.cli.config") as mock:
        mock.api_key = None
        mock.sitename = "mysite"
        mock.state_dir = tmp_path / "state"
        mock.get_config_path.return_value = tmp_path / "config.json"
        yield mock


@pytest.fixture
def site_dir(tmp_path):
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text("<html></html>")
    (root / "debug.log").write_text("log")
    (root / ".gitignore").write_text("*.log\n")
    return root


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, runner):
        """Test main help shows all commands."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--api-key" in result.output
        for command in ["upload", "delete", "list", "push", "pull", "info", "logout"]:
            assert command in result.output

    def test_main_with_global_api_key(self, runner):
        """Test that global --api-key option is accepted."""
        result = runner.invoke(main, ["--api-key", "test_key", "--help"])
        assert result.exit_code == 0

    def test_push_help(self, runner):
        result = runner.invoke(main, ["push", "--help"])
        assert result.exit_code == 0
        assert "--dry-run" in result.output
        assert "--prune" in result.output
        assert "--no-gitignore" in result.output
        assert "--exclude" in result.output


class TestLogin:
    """Tests for the interactive login fallback."""

    @patch("pyneocities.auth.NeocitiesClient")
    @patch("pyneocities.auth.config")
    def test_prompts_and_stores_key(
        self, mock_auth_config, mock_login_class, runner, mock_client, tmp_path
    ):
        mock_auth_config.api_key = None
        mock_auth_config.sitename = None
        mock_auth_config.get_config_path.return_value = tmp_path / "config.json"
        login_client = mock_login_class.return_value.__enter__.return_value
        login_client.key.return_value = {"result": "success", "api_key": "abc123"}
        mock_client.delete.return_value = {"result": "success"}

        result = runner.invoke(main, ["delete", "old.html"], input="mysite\nsecret\n")

        assert result.exit_code == 0
        mock_login_class.assert_called_once_with(sitename="mysite", password="secret")
        mock_auth_config.save_credentials.assert_called_once_with("abc123", "mysite")

    @patch("pyneocities.auth.NeocitiesClient")
    @patch("pyneocities.auth.config")
    def test_failed_login_exits(
        self, mock_auth_config, mock_login_class, runner, mock_client
    ):
        mock_auth_config.api_key = None
        mock_auth_config.sitename = None
        login_client = mock_login_class.return_value.__enter__.return_value
        login_client.key.side_effect = NeocitiesAuthenticationError("bad login")

        result = runner.invoke(main, ["delete", "old.html"], input="mysite\nwrong\n")

        assert result.exit_code == 1
        assert "Login failed" in result.output
        mock_auth_config.save_credentials.assert_not_called()
        mock_client.delete.assert_not_called()


class TestUploadCommand:
    """Tests for the upload command."""

    def test_upload_files(self, runner, mock_client, tmp_path):
        local = tmp_path / "img.png"
        local.write_bytes(b"png")

        result = runner.invoke(
            main, ["-k", "key", "upload", "-d", "images", str(local)]
        )

        assert result.exit_code == 0
        assert "SUCCESS" in result.output
        mock_client.upload.assert_called_once_with(local, "/images/img.png")

    def test_missing_and_directory_skipped(self, runner, mock_client, tmp_path):
        result = runner.invoke(
            main,
            ["-k", "key", "upload", str(tmp_path / "missing.png"), str(tmp_path)],
        )

        assert result.exit_code == 0
        assert "does not exist" in result.output
        assert "directory" in result.output
        mock_client.upload.assert_not_called()

    def test_file_exists_is_neutral(self, runner, mock_client, tmp_path):
        local = tmp_path / "a.txt"
        local.write_text("a")
        mock_client.upload.side_effect = NeocitiesFileExistsError(
            "file already exists", error_type="file_exists"
        )

        result = runner.invoke(main, ["-k", "key", "upload", str(local)])

        assert result.exit_code == 0
        assert "EXISTS" in result.output
        assert "ERROR" not in result.output

    def test_same_content_not_uploaded(self, runner, mock_client, tmp_path):
        local = tmp_path / "a.txt"
        local.write_text("a")
        mock_client.upload_hash.side_effect = lambda hashes: dict.fromkeys(
            hashes, True
        )

        result = runner.invoke(main, ["-k", "key", "upload", str(local)])

        assert result.exit_code == 0
        assert "EXISTS" in result.output
        mock_client.upload_hash.assert_called_once_with(
            {"/a.txt": hashlib.sha1(b"a").hexdigest()}
        )
        mock_client.upload.assert_not_called()

    def test_failed_hash_check_still_uploads(self, runner, mock_client, tmp_path):
        local = tmp_path / "a.txt"
        local.write_text("a")
        mock_client.upload_hash.side_effect = NeocitiesAPIError("boom")

        result = runner.invoke(main, ["-k", "key", "upload", str(local)])

        assert result.exit_code == 0
        assert "SUCCESS" in result.output
        mock_client.upload.assert_called_once_with(local, "/a.txt")


class TestDeleteCommand:
    """Tests for the delete command."""

    def test_delete_each_path(self, runner, mock_client):
        result = runner.invoke(main, ["-k", "key", "delete", "a.html", "b.html"])

        assert result.exit_code == 0
        assert mock_client.delete.call_count == 2
        mock_client.delete.assert_any_call(["a.html"])
        mock_client.delete.assert_any_call(["b.html"])

    def test_delete_error_reported(self, runner, mock_client):
        mock_client.delete.side_effect = NeocitiesAPIError(
            "missing", error_type="missing_files"
        )

        result = runner.invoke(main, ["-k", "key", "delete", "a.html"])

        assert result.exit_code == 0
        assert "ERROR" in result.output


class TestListCommand:
    """Tests for the list command."""

    LISTING = {
        "result": "success",
        "files": [
            {"path": "images", "is_directory": True},
            {
                "path": "index.html",
                "is_directory": False,
                "size": 2048,
                "updated_at": "Sat, 13 Feb 2016 03:04:00 -0000",
            },
        ],
    }

    def test_list_names(self, runner, mock_client):
        mock_client.list.return_value = self.LISTING

        result = runner.invoke(main, ["-k", "key", "list", "/"])

        assert result.exit_code == 0
        assert "images" in result.output
        assert "index.html" in result.output
        mock_client.list.assert_called_once_with("/")

    def test_list_all(self, runner, mock_client):
        mock_client.list.return_value = self.LISTING
        runner.invoke(main, ["-k", "key", "list", "-a"])
        mock_client.list.assert_called_once_with(None)

    def test_list_detail(self, runner, mock_client):
        mock_client.list.return_value = self.LISTING

        result = runner.invoke(main, ["-k", "key", "list", "-d"])

        assert result.exit_code == 0
        assert "2.0 KB" in result.output

    def test_list_json(self, runner, mock_client):
        mock_client.list.return_value = self.LISTING

        result = runner.invoke(main, ["-k", "key", "--json", "list"])

        assert result.exit_code == 0
        assert json.loads(result.output) == self.LISTING["files"]

    def test_list_error(self, runner, mock_client):
        mock_client.list.side_effect = NeocitiesAPIError("site not found")

        result = runner.invoke(main, ["-k", "key", "list"])

        assert result.exit_code == 1
        assert "site not found" in result.output


class TestPushCommand:
    """Tests for the push command."""

    def test_missing_root_exits(self, runner, mock_client, tmp_path):
        result = runner.invoke(main, ["-k", "key", "push", str(tmp_path / "nope")])

        assert result.exit_code == 1
        assert "does not exist" in result.output
        mock_client.upload.assert_not_called()

    def test_root_is_file_exits(self, runner, mock_client, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")

        result = runner.invoke(main, ["-k", "key", "push", str(path)])

        assert result.exit_code == 1
        assert "not a directory" in result.output

    def test_push_respects_gitignore(self, runner, mock_client, site_dir):
        result = runner.invoke(main, ["-k", "key", "push", str(site_dir)])

        assert result.exit_code == 0
        assert "Not syncing .gitignore entries" in result.output
        uploaded = [c.args[1] for c in mock_client.upload.call_args_list]
        assert uploaded == [".gitignore", "index.html"]

    def test_push_no_gitignore(self, runner, mock_client, site_dir):
        result = runner.invoke(
            main, ["-k", "key", "push", "--no-gitignore", str(site_dir)]
        )

        assert result.exit_code == 0
        uploaded = [c.args[1] for c in mock_client.upload.call_args_list]
        assert "debug.log" in uploaded

    def test_push_exclude(self, runner, mock_client, site_dir):
        result = runner.invoke(
            main,
            ["-k", "key", "push", "-e", "index.html", "-e", ".gitignore"]
            + [str(site_dir)],
        )

        assert result.exit_code == 0
        mock_client.upload.assert_not_called()

    def test_push_dry_run_prune(self, runner, mock_client, site_dir):
        mock_client.list.return_value = {
            "result": "success",
            "files": [{"path": "stale.html", "is_directory": False, "size": 1}],
        }

        result = runner.invoke(
            main, ["-k", "key", "push", "--dry-run", "--prune", str(site_dir)]
        )

        assert result.exit_code == 0
        assert "Would upload 2 file(s)" in result.output
        mock_client.upload.assert_not_called()
        mock_client.delete.assert_not_called()

    def test_push_with_file_errors_still_exits_zero(
        self, runner, mock_client, site_dir
    ):
        mock_client.upload.side_effect = NeocitiesAPIError("too large")

        result = runner.invoke(main, ["-k", "key", "push", str(site_dir)])

        assert result.exit_code == 0
        assert "ERROR" in result.output
        assert "2 file(s) failed" in result.output

    def test_push_json(self, runner, mock_client, site_dir):
        result = runner.invoke(
            main, ["-k", "key", "-q", "--json", "push", str(site_dir)]
        )

        assert result.exit_code == 0
        stats = json.loads(result.output)
        assert stats["uploads"] == 2
        assert stats["results"][0]["path"] == ".gitignore"


class TestPullCommand:
    """Tests for the pull command."""

    @pytest.fixture
    def remote_site(self, mock_client):
        mock_client.site_url.return_value = "https://mysite.neocities.org/"
        mock_client.last_server_time = None
        mock_client.info.return_value = {"info": {"sitename": "mysite"}}
        mock_client.list.return_value = {
            "result": "success",
            "files": [
                {"path": "dir", "is_directory": True},
                {
                    "path": "dir/f.txt",
                    "is_directory": False,
                    "size": 1,
                    "updated_at": "Sat, 13 Feb 2016 03:04:00 -0000",
                },
            ],
        }

        def fake_download(url, output_path, progress_callback=None):
            output_path.write_text("remote")
            return output_path

        mock_client.download.side_effect = fake_download
        return mock_client

    def test_pull_and_second_pull_skips(
        self, runner, remote_site, mock_config, tmp_path
    ):
        root = tmp_path / "pulled"

        first = runner.invoke(main, ["-k", "key", "pull", str(root)])
        second = runner.invoke(main, ["-k", "key", "pull", str(root)])

        assert first.exit_code == 0
        assert (root / "dir" / "f.txt").read_text() == "remote"
        assert "Successfully fetched 1 files" in first.output
        assert second.exit_code == 0
        assert "NO NEW UPDATES" in second.output
        assert remote_site.download.call_count == 1

    def test_quiet_pull_hides_file_lines(
        self, runner, remote_site, mock_config, tmp_path
    ):
        result = runner.invoke(
            main, ["-k", "key", "pull", "--quiet", str(tmp_path / "pulled")]
        )

        assert result.exit_code == 0
        assert "Pulling dir/f.txt" not in result.output
        assert "Successfully fetched 1 files" in result.output

    def test_pull_into_file_exits(self, runner, remote_site, mock_config, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")

        result = runner.invoke(main, ["-k", "key", "pull", str(path)])

        assert result.exit_code == 1
        remote_site.list.assert_not_called()

    def test_interrupted_pull(self, runner, remote_site, mock_config, tmp_path):
        remote_site.download.side_effect = KeyboardInterrupt

        result = runner.invoke(main, ["-k", "key", "pull", str(tmp_path / "p")])

        assert result.exit_code == 130
        assert not list((tmp_path / "state").glob("*.json"))


class TestInfoCommand:
    """Tests for the info command."""

    def test_info(self, runner, mock_client, mock_config):
        mock_client.info.return_value = {
            "result": "success",
            "info": {
                "sitename": "youpi",
                "views": 42,
                "tags": ["art", "music"],
                "created_at": "Sat, 13 Feb 2016 03:04:00 -0000",
            },
        }

        result = runner.invoke(main, ["-k", "key", "info", "youpi"])

        assert result.exit_code == 0
        assert "youpi" in result.output
        assert "art, music" in result.output
        mock_client.info.assert_called_once_with("youpi")

    def test_info_not_found(self, runner, mock_client, mock_config):
        mock_client.info.side_effect = NeocitiesAPIError(
            "site not found", error_type="site_not_found"
        )

        result = runner.invoke(main, ["-k", "key", "info", "nobody"])

        assert result.exit_code == 1
        assert "site not found" in result.output


class TestLogoutCommand:
    """Tests for the logout command."""

    def test_not_logged_in(self, runner, mock_config):
        result = runner.invoke(main, ["logout", "-y"])

        assert result.exit_code == 0
        assert "Not logged in" in result.output
        mock_config.clear_credentials.assert_not_called()

    def test_logout_clears_credentials_and_checkpoint(
        self, runner, mock_config, tmp_path
    ):
        (tmp_path / "config.json").write_text("{}")

        with patch("pyneocities.cli.CheckpointStore") as mock_store_class:
            result = runner.invoke(main, ["logout", "-y"])

        assert result.exit_code == 0
        mock_config.clear_credentials.assert_called_once()
        mock_store_class.return_value.clear.assert_called_once_with("mysite")

    def test_logout_cancelled(self, runner, mock_config, tmp_path):
        (tmp_path / "config.json").write_text("{}")

        result = runner.invoke(main, ["logout"], input="n\n")

        assert result.exit_code == 0
        mock_config.clear_credentials.assert_not_called()
