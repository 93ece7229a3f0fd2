"""Unit tests for remote policy retrieval."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from tag_compliance.utils.remote_fetch import (
    RemoteFetchError,
    fetch_remote,
    is_git_url,
    is_remote,
    parse_git_location,
)


class TestLocations:
    """Test location classification and parsing."""

    @pytest.mark.parametrize(
        "location,remote,git",
        [
            ("https://example.com/policy.yaml", True, False),
            ("https://github.com/org/p.git//policy.yaml?ref=main", True, True),
            ("git@github.com:org/p.git//policy.json", True, True),
            ("policies/policy.yaml", False, False),
        ],
    )
    def test_classification(self, location, remote, git):
        assert is_remote(location) is remote
        assert is_git_url(location) is git

    def test_parse_https(self):
        assert parse_git_location("https://github.com/org/p.git//dir/policy.yaml?ref=v1.2") == (
            "https://github.com/org/p.git",
            "dir/policy.yaml",
            "v1.2",
        )

    def test_parse_ssh_without_ref(self):
        assert parse_git_location("git@github.com:org/p.git//policy.json") == (
            "git@github.com:org/p.git",
            "policy.json",
            None,
        )

    def test_parse_without_separator(self):
        with pytest.raises(RemoteFetchError):
            parse_git_location("https://github.com/org/p.git")


class TestFetchHttp:
    """Test HTTP retrieval."""

    def test_success(self):
        response = MagicMock(status_code=200, text="required_tags: [Name]")
        with patch("tag_compliance.utils.remote_fetch.requests.get", return_value=response) as get:
            assert fetch_remote("https://example.com/p.yaml", timeout=7) == "required_tags: [Name]"
        get.assert_called_once_with("https://example.com/p.yaml", timeout=7)

    def test_query_string_ignored_for_extension(self):
        response = MagicMock(status_code=200, text="{}")
        with patch("tag_compliance.utils.remote_fetch.requests.get", return_value=response):
            assert fetch_remote("https://example.com/p.json?token=x") == "{}"

    def test_bad_status(self):
        response = MagicMock(status_code=404, text="")
        with patch("tag_compliance.utils.remote_fetch.requests.get", return_value=response):
            with pytest.raises(RemoteFetchError) as exc_info:
                fetch_remote("https://example.com/p.yaml")
        assert "404" in str(exc_info.value)

    def test_connection_error(self):
        with patch(
            "tag_compliance.utils.remote_fetch.requests.get",
            side_effect=requests.ConnectionError("refused"),
        ):
            with pytest.raises(RemoteFetchError):
                fetch_remote("https://example.com/p.yaml")

    def test_unsupported_extension(self):
        with patch("tag_compliance.utils.remote_fetch.requests.get") as get:
            with pytest.raises(RemoteFetchError) as exc_info:
                fetch_remote("https://example.com/policy.txt")
        get.assert_not_called()
        assert "unsupported file type" in str(exc_info.value)


class TestFetchGit:
    """Test Git retrieval with the clone mocked out."""

    @staticmethod
    def _fake_clone(files: dict[str, str]):
        def _run(cmd, **kwargs):
            target = Path(cmd[-1])
            for name, content in files.items():
                path = target / name
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content)
            return subprocess.CompletedProcess(cmd, 0, "", "")

        return _run

    def test_reads_file_from_clone(self):
        with patch(
            "tag_compliance.utils.remote_fetch.subprocess.run",
            side_effect=self._fake_clone({"tags/policy.yaml": "required_tags: [Owner]"}),
        ) as run:
            content = fetch_remote("https://github.com/org/p.git//tags/policy.yaml?ref=refs/heads/main")
        assert content == "required_tags: [Owner]"
        cmd = run.call_args.args[0]
        assert cmd[:5] == ["git", "clone", "--depth", "1", "--quiet"]
        assert cmd[5:7] == ["--branch", "main"]
        assert cmd[7] == "https://github.com/org/p.git"

    def test_missing_file(self):
        with patch(
            "tag_compliance.utils.remote_fetch.subprocess.run",
            side_effect=self._fake_clone({}),
        ):
            with pytest.raises(RemoteFetchError):
                fetch_remote("git@github.com:org/p.git//policy.json")

    def test_path_escape_rejected(self):
        with patch(
            "tag_compliance.utils.remote_fetch.subprocess.run",
            side_effect=self._fake_clone({}),
        ):
            with pytest.raises(RemoteFetchError) as exc_info:
                fetch_remote("git@github.com:org/p.git//../../etc/policy.json")
        assert "escapes" in str(exc_info.value)

    def test_clone_failure(self):
        error = subprocess.CalledProcessError(128, ["git"], stderr="fatal: repository not found\n")
        with patch("tag_compliance.utils.remote_fetch.subprocess.run", side_effect=error):
            with pytest.raises(RemoteFetchError) as exc_info:
                fetch_remote("git@github.com:org/p.git//policy.json")
        assert "repository not found" in str(exc_info.value)
