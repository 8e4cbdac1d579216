# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Thin wrapper around external command-line tools via :mod:`subprocess`.

Every ``ssh-keygen``, ``ssh``, ``scp`` and ``git`` invocation in the
provisioner goes through :class:`CommandRunner`, providing:

- Debug logging of every command line
- Captured, decoded output for the caller to log or inspect
- A :class:`CommandError` when the executable is missing

Exit statuses are never checked here: the provisioning workflow logs a
non-zero exit status and carries on.

Usage::

    from command_runner import CommandRunner

    runner = CommandRunner()
    result = runner.run_cmd(["git", "status"], cwd="/tmp/repo")
    if not result.ok:
        ...
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

from errors import CommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single external command."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, stripped, for logging."""
        return "\n".join(s for s in (self.stdout.strip(), self.stderr.strip()) if s)


class CommandRunner:
    """Run external commands and report their outcome.

    Parameters
    ----------
    env:
        Extra environment variables merged over :data:`os.environ` for
        every command run by this instance (e.g. ``GIT_SSH_COMMAND``).
    """

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self.env = dict(env or {})

    def run_cmd(
        self,
        args: list[str],
        *,
        cwd: str | Path | None = None,
    ) -> CommandResult:
        """Run *args* and return its :class:`CommandResult`.

        There is no timeout: a command that hangs blocks the workflow,
        the same as it would in a shell script.

        Raises
        ------
        CommandError
            If the executable does not exist.
        """
        logger.debug("Running: %s", shlex.join(args))

        env = {**os.environ, **self.env} if self.env else None
        try:
            proc = subprocess.run(
                args,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                env=env,
            )
        except FileNotFoundError as exc:
            raise CommandError(
                f"{args[0]} executable not found – is it installed?",
                returncode=-1,
                stderr=str(exc),
            ) from exc

        result = CommandResult(
            args=list(args),
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )

        logger.debug(
            "%s exited %d (stdout=%d bytes, stderr=%d bytes)",
            args[0],
            result.returncode,
            len(result.stdout),
            len(result.stderr),
        )
        return result

    def with_env(self, **extra: str) -> CommandRunner:
        """Return a new runner whose environment adds *extra*."""
        return CommandRunner({**self.env, **extra})
