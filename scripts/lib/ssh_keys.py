# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""SSH key material and connectivity for the Gerrit test server.

Covers the local half of the credential bootstrap:

- Generating an RSA key pair once (never overwriting an existing key)
- Forgetting previously recorded host keys
- Checking that the uploaded key opens an SSH session on Gerrit
- Publishing the key pair to a shared directory for other containers

Host-key verification is disabled throughout; the server is a disposable
container whose host key changes on every start.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from command_runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

# Permissions applied to published key files and their directory
SHARED_MODE = 0o777

# Options that make ssh/scp accept any host key without recording it
INSECURE_SSH_OPTIONS = [
    "-o",
    "StrictHostKeyChecking=no",
    "-o",
    "UserKnownHostsFile=/dev/null",
    "-o",
    "LogLevel=ERROR",
]


def ensure_key_pair(runner: CommandRunner, key_path: Path) -> bool:
    """Generate an RSA key pair at *key_path* unless one exists.

    Returns
    -------
    bool
        *True* if a new key was generated, *False* if the existing one
        was kept.
    """
    if key_path.exists():
        logger.info("Reusing existing SSH key %s", key_path)
        return False

    key_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    logger.info("Generating RSA key pair %s", key_path)
    result = runner.run_cmd(
        ["ssh-keygen", "-t", "rsa", "-N", "", "-f", str(key_path)],
    )
    if not result.ok:
        logger.warning("ssh-keygen failed (exit %d): %s", result.returncode, result.output)
    return True


def reset_known_hosts(known_hosts: Path | None = None) -> bool:
    """Delete the user's ``known_hosts`` file, if present.

    Returns *True* if a file was removed.  A file that cannot be
    removed is logged and left in place.
    """
    if known_hosts is None:
        known_hosts = Path("~/.ssh/known_hosts").expanduser()
    if not known_hosts.exists():
        return False
    try:
        known_hosts.unlink()
    except OSError as exc:
        logger.warning("Cannot remove %s: %s", known_hosts, exc)
        return False
    logger.debug("Removed %s", known_hosts)
    return True


def ssh_command(key_path: Path, port: int) -> list[str]:
    """Base ``ssh`` invocation using *key_path* with host-key checks off."""
    return ["ssh", "-p", str(port), "-i", str(key_path), *INSECURE_SSH_OPTIONS]


def verify_ssh_access(
    runner: CommandRunner,
    key_path: Path,
    target: str,
    port: int,
) -> CommandResult:
    """Run ``gerrit version`` over SSH as *target* (``user@host``).

    The outcome is logged, never raised.
    """
    result = runner.run_cmd([*ssh_command(key_path, port), target, "gerrit", "version"])
    if result.ok:
        logger.info("SSH access verified: %s ✅", result.stdout.strip())
    else:
        logger.warning(
            "SSH check as %s failed (exit %d): %s",
            target,
            result.returncode,
            result.output,
        )
    return result


def publish_key_material(key_path: Path, shared_dir: Path) -> list[Path]:
    """Copy the private and public key into *shared_dir* with open permissions.

    Missing source files are skipped with a warning.  Filesystem errors
    are logged, not raised; the files copied before the error are still
    reported.

    Returns
    -------
    list[Path]
        The files written.
    """
    written: list[Path] = []
    try:
        shared_dir.mkdir(parents=True, exist_ok=True)
        shared_dir.chmod(SHARED_MODE)

        for source in (key_path, key_path.with_name(f"{key_path.name}.pub")):
            if not source.exists():
                logger.warning("Key file %s missing, not published", source)
                continue
            dest = shared_dir / source.name
            shutil.copyfile(source, dest)
            dest.chmod(SHARED_MODE)
            written.append(dest)
            logger.debug("Published %s", dest)
    except OSError as exc:
        logger.warning("Cannot publish key material to %s: %s", shared_dir, exc)

    return written
