# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""
Retrieval of policy files from HTTP(S) URLs and Git repositories.

Git locations follow the `<repo-url>//<file-path>?ref=<branch-or-tag>`
convention, e.g. https://github.com/org/policies.git//tags/policy.yaml?ref=main
or git@github.com:org/policies.git//policy.json.
"""

import logging
import subprocess
import tempfile
from pathlib import Path, PurePosixPath
from urllib.parse import parse_qs

import requests

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".yaml", ".yml", ".json")
DEFAULT_TIMEOUT = 30


class RemoteFetchError(Exception):
    """Raised when a remote policy file cannot be retrieved."""

    pass


def is_http_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def is_git_url(location: str) -> bool:
    if location.startswith("git@"):
        return True
    return is_http_url(location) and ".git//" in location


def is_remote(location: str) -> bool:
    return is_http_url(location) or is_git_url(location)


def remote_extension(location: str) -> str:
    """File extension of a remote location, query string ignored."""
    return PurePosixPath(location.split("?", 1)[0]).suffix.lower()


def parse_git_location(location: str) -> tuple[str, str, str | None]:
    """
    Split a Git location into (repository URL, file path, ref).

    Raises:
        RemoteFetchError: If the location has no `//` file separator
    """
    start = 0
    for scheme in ("https://", "http://"):
        if location.startswith(scheme):
            start = len(scheme)
            break
    separator = location.find("//", start)
    if separator == -1:
        raise RemoteFetchError("invalid git URL format, expected: <git-url>//<file-path>")

    repo_url = location[:separator]
    remainder = location[separator + 2:]
    ref = None
    if "?" in remainder:
        remainder, query = remainder.split("?", 1)
        refs = parse_qs(query).get("ref")
        ref = refs[0] if refs else None
    return repo_url, remainder, ref


def fetch_http(url: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Download a file over HTTP(S)."""
    logger.info(f"Fetching policy from {url}")
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise RemoteFetchError(f"failed to fetch from HTTP: {e}") from e
    if resp.status_code != 200:
        raise RemoteFetchError(f"HTTP request failed with status: {resp.status_code}")
    return resp.text


def fetch_git(location: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Shallow-clone a repository and read one file from it."""
    repo_url, file_path, ref = parse_git_location(location)
    logger.info(f"Cloning {repo_url} (ref: {ref or 'default'}) to read {file_path}")

    with tempfile.TemporaryDirectory(prefix="tag-compliance-git-") as tmp_dir:
        cmd = ["git", "clone", "--depth", "1", "--quiet"]
        if ref:
            cmd += ["--branch", ref.removeprefix("refs/heads/").removeprefix("refs/tags/")]
        cmd += [repo_url, tmp_dir]
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as e:
            raise RemoteFetchError("git executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise RemoteFetchError(f"git clone timed out after {timeout}s") from e
        except subprocess.CalledProcessError as e:
            raise RemoteFetchError(f"failed to clone git repository: {e.stderr.strip()}") from e

        root = Path(tmp_dir).resolve()
        target = (root / file_path).resolve()
        if not target.is_relative_to(root):
            raise RemoteFetchError(f"file path escapes the repository: {file_path}")
        try:
            return target.read_text(encoding="utf-8")
        except OSError as e:
            raise RemoteFetchError(f"failed to read {file_path} from repository: {e}") from e


def fetch_remote(location: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Fetch a remote policy file.

    Args:
        location: HTTP(S) URL or Git location
        timeout: Network timeout in seconds

    Returns:
        The file content

    Raises:
        RemoteFetchError: If the location is unsupported or retrieval fails
    """
    if remote_extension(location) not in ALLOWED_EXTENSIONS:
        raise RemoteFetchError("unsupported file type: must be .yaml, .yml, or .json")
    if is_git_url(location):
        return fetch_git(location, timeout)
    if is_http_url(location):
        return fetch_http(location, timeout)
    raise RemoteFetchError("unsupported remote path format")
