# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Tests for the config module."""

from __future__ import annotations

from pathlib import Path

import pytest
from config import (
    DEFAULT_USERS,
    ConfigError,
    ProvisionConfig,
    UserSpec,
)

# ---------------------------------------------------------------------------
# Defaults and derived properties
# ---------------------------------------------------------------------------


class TestProvisionConfigDefaults:
    def test_defaults(self) -> None:
        cfg = ProvisionConfig()
        assert cfg.host == "localhost"
        assert cfg.http_port == 8080
        assert cfg.ssh_port == 29418
        assert cfg.admin_user == "admin"
        assert cfg.admin_password == "secret"
        assert cfg.project == "gerritbot-rs"
        assert cfg.poll_interval == 0.1
        assert cfg.scp_legacy_protocol is True

    def test_default_users(self) -> None:
        names = [u.username for u in ProvisionConfig().users]
        assert names == ["jdoe", "aonymous"]
        assert all(u.email for u in DEFAULT_USERS)

    def test_base_url(self) -> None:
        assert ProvisionConfig().base_url == "http://localhost:8080"

    def test_remote_url(self) -> None:
        cfg = ProvisionConfig(username="admin")
        assert cfg.remote_url == "ssh://admin@localhost:29418/gerritbot-rs"

    def test_ssh_target(self) -> None:
        assert ProvisionConfig(username="jdoe").ssh_target == "jdoe@localhost"

    def test_key_paths(self) -> None:
        cfg = ProvisionConfig(key_path="/keys/id_rsa")
        assert cfg.private_key_path == Path("/keys/id_rsa")
        assert cfg.public_key_path == Path("/keys/id_rsa.pub")

    def test_key_path_expands_home(self) -> None:
        cfg = ProvisionConfig()
        assert not str(cfg.private_key_path).startswith("~")
        assert cfg.private_key_path.name == "id_rsa"

    def test_frozen(self) -> None:
        cfg = ProvisionConfig()
        with pytest.raises(AttributeError):
            cfg.host = "elsewhere"  # pyright: ignore[reportAttributeAccessIssue]


# ---------------------------------------------------------------------------
# from_environment
# ---------------------------------------------------------------------------


class TestFromEnvironment:
    def test_empty_env_uses_defaults(self, clean_env) -> None:
        cfg = ProvisionConfig.from_environment()
        assert cfg == ProvisionConfig()

    def test_explicit_username_wins(self, clean_env) -> None:
        clean_env.setenv("GERRIT_USER", "jdoe")
        clean_env.setenv("USER", "root")
        cfg = ProvisionConfig.from_environment(username="admin")
        assert cfg.username == "admin"

    def test_gerrit_user_before_user(self, clean_env) -> None:
        clean_env.setenv("GERRIT_USER", "jdoe")
        clean_env.setenv("USER", "root")
        assert ProvisionConfig.from_environment().username == "jdoe"

    def test_user_fallback(self, clean_env) -> None:
        clean_env.setenv("USER", "root")
        assert ProvisionConfig.from_environment().username == "root"

    def test_all_overrides(self, clean_env) -> None:
        clean_env.setenv("GERRIT_HOST", "gerrit")
        clean_env.setenv("GERRIT_HTTP_PORT", "18080")
        clean_env.setenv("GERRIT_SSH_PORT", "2222")
        clean_env.setenv("GERRIT_ADMIN_USER", "root")
        clean_env.setenv("GERRIT_ADMIN_PASSWORD", "hunter2")
        clean_env.setenv("SSH_KEY_PATH", "/keys/id_rsa")
        clean_env.setenv("SHARED_KEY_DIR", "/out")
        clean_env.setenv("GERRIT_PROJECT", "demo")
        clean_env.setenv("SEED_REPO_URL", "https://example.com/demo.git")
        clean_env.setenv("SCP_LEGACY_PROTOCOL", "false")
        clean_env.setenv("POLL_INTERVAL", "0.5")
        clean_env.setenv("DEBUG", "TRUE")

        cfg = ProvisionConfig.from_environment()

        assert cfg.host == "gerrit"
        assert cfg.http_port == 18080
        assert cfg.ssh_port == 2222
        assert cfg.admin_user == "root"
        assert cfg.admin_password == "hunter2"
        assert cfg.key_path == "/keys/id_rsa"
        assert cfg.shared_key_dir == "/out"
        assert cfg.project == "demo"
        assert cfg.seed_repo_url == "https://example.com/demo.git"
        assert cfg.scp_legacy_protocol is False
        assert cfg.poll_interval == 0.5
        assert cfg.debug is True

    def test_invalid_port_raises(self, clean_env) -> None:
        clean_env.setenv("GERRIT_HTTP_PORT", "http")
        with pytest.raises(ConfigError, match="GERRIT_HTTP_PORT"):
            ProvisionConfig.from_environment()

    def test_invalid_interval_raises(self, clean_env) -> None:
        clean_env.setenv("POLL_INTERVAL", "fast")
        with pytest.raises(ConfigError, match="POLL_INTERVAL"):
            ProvisionConfig.from_environment()


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidate:
    def test_defaults_valid(self) -> None:
        assert ProvisionConfig().validate() == []

    def test_bad_username(self) -> None:
        errors = ProvisionConfig(username="bad user;rm").validate()
        assert any("Invalid username" in e for e in errors)

    def test_username_too_long(self) -> None:
        errors = ProvisionConfig(username="a" * 65).validate()
        assert any("too long" in e for e in errors)

    def test_bad_project(self) -> None:
        errors = ProvisionConfig(project="a b").validate()
        assert any("Invalid project" in e for e in errors)

    def test_bad_account_username(self) -> None:
        cfg = ProvisionConfig(users=(UserSpec("x y", "X", "x@example.com"),))
        assert any("account username" in e for e in cfg.validate())

    def test_port_out_of_range(self) -> None:
        errors = ProvisionConfig(http_port=0, ssh_port=70000).validate()
        assert any("http_port" in e for e in errors)
        assert any("ssh_port" in e for e in errors)

    def test_non_positive_interval(self) -> None:
        errors = ProvisionConfig(poll_interval=0).validate()
        assert any("poll_interval" in e for e in errors)
