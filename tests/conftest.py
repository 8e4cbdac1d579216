# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Shared pytest fixtures for the provisioner tests."""

from __future__ import annotations

import json
import subprocess
from typing import Any
from unittest.mock import patch

import pytest

# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove provisioner-specific environment variables.

    This prevents host environment from leaking into tests.
    """
    env_vars = [
        "GERRIT_HOST",
        "GERRIT_HTTP_PORT",
        "GERRIT_SSH_PORT",
        "GERRIT_ADMIN_USER",
        "GERRIT_ADMIN_PASSWORD",
        "GERRIT_USER",
        "USER",
        "SSH_KEY_PATH",
        "SHARED_KEY_DIR",
        "GERRIT_PROJECT",
        "SEED_REPO_URL",
        "GIT_COMMITTER_NAME",
        "GIT_COMMITTER_EMAIL",
        "SCP_LEGACY_PROTOCOL",
        "POLL_INTERVAL",
        "DEBUG",
        "GITHUB_ACTIONS",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


# ---------------------------------------------------------------------------
# Subprocess mock helpers
# ---------------------------------------------------------------------------


def make_completed_process(
    stdout: str = "",
    stderr: str = "",
    returncode: int = 0,
    args: list[str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Create a mock subprocess.CompletedProcess."""
    return subprocess.CompletedProcess(
        args=args or ["true"],
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
    )


@pytest.fixture()
def mock_subprocess_run():
    """Patch subprocess.run and return the mock.

    The default return value is a successful command with empty
    stdout/stderr.  Tests can override ``mock.return_value`` or use
    ``mock.side_effect`` for sequences of calls.
    """
    with patch("subprocess.run") as mock:
        mock.return_value = make_completed_process()
        yield mock


def called_commands(mock_run) -> list[list[str]]:
    """Return the argv of every call made to a patched subprocess.run."""
    return [list(c.args[0]) for c in mock_run.call_args_list]


# ---------------------------------------------------------------------------
# Requests mock helpers
# ---------------------------------------------------------------------------


class MockResponse:
    """Minimal mock for requests.Response."""

    def __init__(
        self,
        status_code: int = 200,
        text: str = "",
        url: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.text = text
        self.url = url or ""
        self.headers = headers or {}
        self.content = text.encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.text)


def gerrit_json(data: Any, status_code: int = 200) -> MockResponse:
    """Create a JSON response carrying Gerrit's magic prefix."""
    return MockResponse(
        status_code=status_code,
        text=")]}'\n" + json.dumps(data),
        headers={"content-type": "application/json; charset=UTF-8"},
    )
