#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Provision a local Gerrit server as an integration-test fixture.

Runs once inside the test container, after the Gerrit server has been
started, and leaves it in the state the bot's integration tests expect:

- Waits for the HTTP port to accept connections
- Generates an RSA key (once), uploads it to the account and checks SSH
- Publishes the key pair to a shared directory for the other containers
- Registers the ``jdoe`` and ``aonymous`` accounts
- Creates the ``gerritbot-rs`` project
- Seeds it with history and pushes one amended commit for review
- Reports how many open reviews the project has

The workflow does not stop on failures: every outcome is logged and the
next step runs anyway.  The exit status is that of the final push.

Usage::

    # Provision as $GERRIT_USER / $USER (falls back to "admin")
    python3 scripts/provision-gerrit.py

    # Provision as a specific account
    python3 scripts/provision-gerrit.py admin

Environment Variables:
    GERRIT_HOST, GERRIT_HTTP_PORT, GERRIT_SSH_PORT
    GERRIT_ADMIN_USER, GERRIT_ADMIN_PASSWORD
    GERRIT_USER         - Account to provision when no argument is given
    SSH_KEY_PATH        - Private key location (default ~/.ssh/id_rsa)
    SHARED_KEY_DIR      - Where the key pair is published
    GERRIT_PROJECT, SEED_REPO_URL
    DEBUG               - Enable debug logging if "true"
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Path setup – ensure ``scripts/lib`` is importable
# ---------------------------------------------------------------------------
SCRIPT_DIR = Path(__file__).parent.resolve()
LIB_DIR = SCRIPT_DIR / "lib"
sys.path.insert(0, str(LIB_DIR))

from command_runner import CommandRunner  # noqa: E402
from config import ProvisionConfig  # noqa: E402
from errors import ProvisionError  # noqa: E402
from gerrit_api import (  # noqa: E402
    ApiResult,
    GerritAdminClient,
    GerritAPIError,
    validate_ssh_key,
)
from git_seed import RepoSeeder, StepResult  # noqa: E402
from health_check import wait_for_port  # noqa: E402
from logging_utils import log_step, setup_logging  # noqa: E402
from ssh_keys import (  # noqa: E402
    ensure_key_pair,
    publish_key_material,
    reset_known_hosts,
    verify_ssh_access,
)

logger = logging.getLogger(__name__)

TOTAL_STEPS = 6


# =====================================================================
# Helpers
# =====================================================================


def _api_step(name: str, result: ApiResult) -> StepResult:
    """Log a REST call's outcome and turn it into a StepResult."""
    if result.ok:
        logger.info("%s: %s ✅", name, result.describe())
        return StepResult(name=name, ok=True)
    logger.warning("%s: %s", name, result.describe())
    detail = f"HTTP {result.status_code}" if result.status_code else result.error
    return StepResult(name=name, ok=False, detail=detail)


# =====================================================================
# Workflow steps
# =====================================================================


def wait_for_gerrit(config: ProvisionConfig) -> StepResult:
    """Block until Gerrit's HTTP port accepts connections."""
    attempts = wait_for_port(config.host, config.http_port, config.poll_interval)
    return StepResult(name="wait_for_http", ok=True, detail=f"{attempts} attempt(s)")


def bootstrap_credentials(
    config: ProvisionConfig,
    runner: CommandRunner,
    client: GerritAdminClient,
) -> list[StepResult]:
    """Create, upload, verify and publish the account's SSH key."""
    results: list[StepResult] = []
    key_path = config.private_key_path

    generated = ensure_key_pair(runner, key_path)
    results.append(
        StepResult(
            name="ssh_keygen",
            ok=key_path.exists(),
            detail="generated" if generated else "reused",
        )
    )

    try:
        public_key = config.public_key_path.read_bytes()
    except OSError as exc:
        logger.warning("Cannot read public key %s: %s", config.public_key_path, exc)
        public_key = b""

    if public_key and not validate_ssh_key(public_key.decode("utf-8", "replace")):
        logger.warning(
            "Public key %s does not look like an OpenSSH key", config.public_key_path
        )

    results.append(
        _api_step("upload_ssh_key", client.add_ssh_key(config.username, public_key))
    )

    reset_known_hosts()
    ssh_result = verify_ssh_access(runner, key_path, config.ssh_target, config.ssh_port)
    results.append(
        StepResult(
            name="ssh_version",
            ok=ssh_result.ok,
            detail=ssh_result.stdout.strip() or f"exit {ssh_result.returncode}",
        )
    )

    published = publish_key_material(key_path, Path(config.shared_key_dir))
    results.append(
        StepResult(
            name="publish_keys",
            ok=len(published) == 2,
            detail=f"{len(published)} file(s) in {config.shared_key_dir}",
        )
    )
    return results


def provision_accounts(
    config: ProvisionConfig, client: GerritAdminClient
) -> list[StepResult]:
    """Register every configured user account."""
    return [
        _api_step(
            f"create_account:{user.username}",
            client.create_account(user.username, name=user.name, email=user.email),
        )
        for user in config.users
    ]


def provision_project(config: ProvisionConfig, client: GerritAdminClient) -> StepResult:
    """Create the project that receives the seed history."""
    return _api_step(
        f"create_project:{config.project}", client.create_project(config.project)
    )


def seed_repository(config: ProvisionConfig, runner: CommandRunner) -> list[StepResult]:
    """Push the seed history and propose the amended tip for review."""
    return RepoSeeder(config, runner).run()


def verify_review(config: ProvisionConfig, client: GerritAdminClient) -> StepResult:
    """Report the number of open reviews on the seeded project."""
    query = f"project:{config.project} status:open"
    try:
        changes = client.list_changes(query)
    except GerritAPIError as exc:
        logger.warning("Could not query open reviews: %s", exc)
        return StepResult(name="open_reviews", ok=False, detail=str(exc).splitlines()[0])

    for change in changes:
        logger.info(
            "  Open review %s: %s", change.get("_number", "?"), change.get("subject", "")
        )
    if len(changes) > 1:
        logger.warning(
            "Expected one open review on %s, found %d (already seeded?)",
            config.project,
            len(changes),
        )
    return StepResult(
        name="open_reviews", ok=len(changes) == 1, detail=str(len(changes))
    )


def _log_summary(results: list[StepResult]) -> None:
    """Log a table of every step's outcome."""
    logger.info("========================================")
    logger.info("Provisioning summary")
    logger.info("========================================")
    width = max((len(r.name) for r in results), default=0)
    for r in results:
        status = "ok" if r.ok else "failed"
        detail = f" ({r.detail})" if r.detail else ""
        logger.info("  %s  %s%s", r.name.ljust(width), status, detail)
    failed = sum(1 for r in results if not r.ok)
    if failed:
        logger.warning("%d of %d step(s) failed", failed, len(results))
    else:
        logger.info("All %d steps succeeded ✅", len(results))


# =====================================================================
# Main orchestrator
# =====================================================================


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Provision a local Gerrit server for integration tests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "username",
        nargs="?",
        help="Account to provision (default: $GERRIT_USER, $USER or 'admin')",
    )
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    """Provision the Gerrit server.

    Returns
    -------
    int
        1 on configuration errors or when the final push for review
        failed, 0 otherwise.
    """
    args = parse_args(argv)
    config = ProvisionConfig.from_environment(username=args.username)
    setup_logging(debug=config.debug)

    errors = config.validate()
    if errors:
        for err in errors:
            logger.error("Configuration error: %s", err)
        return 1

    logger.info("Provisioning Gerrit at %s as '%s'", config.base_url, config.username)

    runner = CommandRunner()
    client = GerritAdminClient(config.base_url, config.admin_user, config.admin_password)
    results: list[StepResult] = []

    log_step(1, TOTAL_STEPS, f"Waiting for {config.host}:{config.http_port}")
    results.append(wait_for_gerrit(config))

    log_step(2, TOTAL_STEPS, f"SSH key for {config.username}")
    results.extend(bootstrap_credentials(config, runner, client))

    log_step(3, TOTAL_STEPS, "Accounts")
    results.extend(provision_accounts(config, client))

    log_step(4, TOTAL_STEPS, f"Project {config.project}")
    results.append(provision_project(config, client))

    log_step(5, TOTAL_STEPS, f"Seeding {config.project}")
    seed_results = seed_repository(config, runner)
    results.extend(seed_results)

    log_step(6, TOTAL_STEPS, "Open reviews")
    results.append(verify_review(config, client))

    _log_summary(results)

    return 0 if seed_results and seed_results[-1].ok else 1


def main(argv: list[str] | None = None) -> int:
    """Entry point with structured error handling."""
    try:
        return run(argv)
    except ProvisionError as exc:
        logger.error(str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
