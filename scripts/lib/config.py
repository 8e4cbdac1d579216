# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Configuration for provisioning the Gerrit test server.

Collects the server location, the fixed administrative credentials, the
accounts and project to create, and the repository used to seed the
project into a single frozen dataclass.  Every value has a default that
matches the test container, and each can be overridden through an
environment variable.

Usage::

    from config import ProvisionConfig

    config = ProvisionConfig.from_environment(username="admin")
    for problem in config.validate():
        print(problem)
    print(config.base_url, config.remote_url)
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from errors import ConfigError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_HOST = "localhost"
DEFAULT_HTTP_PORT = 8080
DEFAULT_SSH_PORT = 29418
DEFAULT_ADMIN_USER = "admin"
DEFAULT_ADMIN_PASSWORD = "secret"
DEFAULT_USERNAME = "admin"
DEFAULT_KEY_PATH = "~/.ssh/id_rsa"
DEFAULT_SHARED_KEY_DIR = "/shared/ssh"
DEFAULT_PROJECT = "gerritbot-rs"
DEFAULT_SEED_REPO_URL = "https://github.com/boxdot/gerritbot-rs"
DEFAULT_COMMITTER_NAME = "Administrator"
DEFAULT_COMMITTER_EMAIL = "admin@example.com"
DEFAULT_POLL_INTERVAL = 0.1

# Username validation: only characters safe to embed in URLs and ssh targets
_USERNAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")
_USERNAME_MAX_LEN = 64


@dataclass(frozen=True)
class UserSpec:
    """An account to register on the server."""

    username: str
    name: str
    email: str


DEFAULT_USERS: tuple[UserSpec, ...] = (
    UserSpec(username="jdoe", name="John Doe", email="jdoe@example.com"),
    UserSpec(username="aonymous", name="Anonymous", email="aonymous@example.com"),
)


@dataclass(frozen=True)
class ProvisionConfig:
    """Everything the provisioning workflow needs to know."""

    # Server
    host: str = DEFAULT_HOST
    http_port: int = DEFAULT_HTTP_PORT
    ssh_port: int = DEFAULT_SSH_PORT

    # Digest credentials for the REST API
    admin_user: str = DEFAULT_ADMIN_USER
    admin_password: str = DEFAULT_ADMIN_PASSWORD

    # Account that receives the SSH key and performs all SSH operations
    username: str = DEFAULT_USERNAME

    # Key material
    key_path: str = DEFAULT_KEY_PATH
    shared_key_dir: str = DEFAULT_SHARED_KEY_DIR

    # Remote records
    users: tuple[UserSpec, ...] = field(default=DEFAULT_USERS)
    project: str = DEFAULT_PROJECT

    # Repository seeding
    seed_repo_url: str = DEFAULT_SEED_REPO_URL
    committer_name: str = DEFAULT_COMMITTER_NAME
    committer_email: str = DEFAULT_COMMITTER_EMAIL
    scp_legacy_protocol: bool = True

    # Availability probe
    poll_interval: float = DEFAULT_POLL_INTERVAL

    debug: bool = False

    # ------------------------------------------------------------------
    # Derived properties
    # ------------------------------------------------------------------

    @property
    def base_url(self) -> str:
        """HTTP root of the Gerrit server."""
        return f"http://{self.host}:{self.http_port}"

    @property
    def private_key_path(self) -> Path:
        """Private key location with ``~`` expanded."""
        return Path(self.key_path).expanduser()

    @property
    def public_key_path(self) -> Path:
        """Public key location, next to the private key."""
        private = self.private_key_path
        return private.with_name(f"{private.name}.pub")

    @property
    def ssh_target(self) -> str:
        """``user@host`` for ssh and scp."""
        return f"{self.username}@{self.host}"

    @property
    def remote_url(self) -> str:
        """Git remote URL of the project over SSH."""
        return f"ssh://{self.username}@{self.host}:{self.ssh_port}/{self.project}"

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_environment(cls, username: str | None = None) -> ProvisionConfig:
        """Build a configuration from environment variables.

        *username* (typically the CLI positional argument) takes
        precedence over ``$GERRIT_USER`` and ``$USER``.
        """
        env = os.environ.get

        if not username:
            username = env("GERRIT_USER") or env("USER") or DEFAULT_USERNAME

        return cls(
            host=env("GERRIT_HOST", DEFAULT_HOST),
            http_port=_env_int("GERRIT_HTTP_PORT", DEFAULT_HTTP_PORT),
            ssh_port=_env_int("GERRIT_SSH_PORT", DEFAULT_SSH_PORT),
            admin_user=env("GERRIT_ADMIN_USER", DEFAULT_ADMIN_USER),
            admin_password=env("GERRIT_ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
            username=username,
            key_path=env("SSH_KEY_PATH", DEFAULT_KEY_PATH),
            shared_key_dir=env("SHARED_KEY_DIR", DEFAULT_SHARED_KEY_DIR),
            project=env("GERRIT_PROJECT", DEFAULT_PROJECT),
            seed_repo_url=env("SEED_REPO_URL", DEFAULT_SEED_REPO_URL),
            committer_name=env("GIT_COMMITTER_NAME", DEFAULT_COMMITTER_NAME),
            committer_email=env("GIT_COMMITTER_EMAIL", DEFAULT_COMMITTER_EMAIL),
            scp_legacy_protocol=_str_to_bool(env("SCP_LEGACY_PROTOCOL", "true")),
            poll_interval=_env_float("POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            debug=_str_to_bool(env("DEBUG", "false")),
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> list[str]:
        """Return a list of validation error messages (empty if valid)."""
        errors: list[str] = []

        for label, name in (("username", self.username), ("project", self.project)):
            if not _USERNAME_RE.match(name):
                errors.append(
                    f"Invalid {label}: '{name}' – "
                    "must contain only letters, numbers, dots, underscores, hyphens"
                )
        if len(self.username) > _USERNAME_MAX_LEN:
            errors.append(f"username too long (max {_USERNAME_MAX_LEN} characters)")

        for user in self.users:
            if not _USERNAME_RE.match(user.username):
                errors.append(f"Invalid account username: '{user.username}'")

        if not (1 <= self.http_port <= 65535):
            errors.append(f"http_port out of range: {self.http_port}")
        if not (1 <= self.ssh_port <= 65535):
            errors.append(f"ssh_port out of range: {self.ssh_port}")

        if self.poll_interval <= 0:
            errors.append(f"poll_interval must be positive: {self.poll_interval}")

        return errors


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _str_to_bool(value: str) -> bool:
    """Convert a string to bool (``"true"`` → True, anything else → False)."""
    return value.strip().lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer: got '{raw}'") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number: got '{raw}'") from exc
