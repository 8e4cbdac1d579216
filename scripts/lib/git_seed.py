# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Seed a Gerrit project with history and one open review.

The seeding sequence is fixed:

1. clone the seed repository into a fresh temporary directory
2. add the Gerrit project as the ``gerrit`` remote
3. move ``main`` back to the parent of the cloned tip
4. push ``main:main`` to Gerrit
5. fetch and install Gerrit's ``commit-msg`` hook
6. configure the committer identity
7. amend the tip commit so the hook adds a ``Change-Id``
8. push ``HEAD:refs/for/main``, which opens a review

Each step runs whatever the outcome of the previous one; failures are
logged and collected in the returned :class:`StepResult` list.

Usage::

    from git_seed import RepoSeeder

    seeder = RepoSeeder(config, runner)
    results = seeder.run()
"""

from __future__ import annotations

import logging
import shlex
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from command_runner import CommandResult, CommandRunner
from config import ProvisionConfig
from ssh_keys import INSECURE_SSH_OPTIONS

logger = logging.getLogger(__name__)

REMOTE_NAME = "gerrit"
TARGET_BRANCH = "main"
HOOK_NAME = "commit-msg"

# Order in which RepoSeeder.run() executes its steps
SEED_STEPS = (
    "clone",
    "add_remote",
    "checkout_parent",
    "push_main",
    "install_hook",
    "set_identity",
    "amend",
    "push_for_review",
)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one seeding step."""

    name: str
    ok: bool
    detail: str = ""


class RepoSeeder:
    """Clone, push and propose the seed repository on Gerrit.

    Parameters
    ----------
    config:
        Provisioning configuration (remote URL, key, identity, …).
    runner:
        Command runner; git commands run through a copy of it with
        ``GIT_SSH_COMMAND`` pointing at the provisioned key.
    workdir:
        Directory to clone into.  A new temporary directory is created
        when omitted; it is not removed afterwards.
    """

    def __init__(
        self,
        config: ProvisionConfig,
        runner: CommandRunner,
        workdir: Path | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.git_runner = runner.with_env(
            GIT_SSH_COMMAND=shlex.join(
                ["ssh", "-i", str(config.private_key_path), *INSECURE_SSH_OPTIONS]
            )
        )
        self.workdir = workdir or Path(tempfile.mkdtemp(prefix="gerrit-seed-"))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def hook_path(self) -> Path:
        return self.workdir / ".git" / "hooks" / HOOK_NAME

    def _git(self, *args: str, cwd: Path | None = None) -> CommandResult:
        return self.git_runner.run_cmd(["git", *args], cwd=cwd or self.workdir)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def clone(self) -> CommandResult:
        logger.info("Cloning %s into %s", self.config.seed_repo_url, self.workdir)
        return self._git(
            "clone", self.config.seed_repo_url, str(self.workdir), cwd=self.workdir.parent
        )

    def add_remote(self) -> CommandResult:
        logger.info("Adding remote %s → %s", REMOTE_NAME, self.config.remote_url)
        return self._git("remote", "add", REMOTE_NAME, self.config.remote_url)

    def checkout_parent(self) -> CommandResult:
        """Point ``main`` at the parent of the cloned tip and check it out."""
        return self._git("checkout", "-B", TARGET_BRANCH, "HEAD~1")

    def push_main(self) -> CommandResult:
        logger.info("Pushing history to %s/%s", REMOTE_NAME, TARGET_BRANCH)
        return self._git("push", REMOTE_NAME, f"{TARGET_BRANCH}:{TARGET_BRANCH}")

    def install_hook(self) -> CommandResult:
        """Copy Gerrit's ``commit-msg`` hook into the clone via scp."""
        cmd = ["scp", "-p", "-P", str(self.config.ssh_port)]
        if self.config.scp_legacy_protocol:
            cmd.append("-O")
        cmd += [
            "-i",
            str(self.config.private_key_path),
            *INSECURE_SSH_OPTIONS,
            f"{self.config.ssh_target}:hooks/{HOOK_NAME}",
            str(self.hook_path),
        ]
        result = self.runner.run_cmd(cmd)
        if self.hook_path.exists():
            self.hook_path.chmod(0o755)
        return result

    def set_identity(self) -> CommandResult:
        name_result = self._git("config", "user.name", self.config.committer_name)
        if not name_result.ok:
            return name_result
        return self._git("config", "user.email", self.config.committer_email)

    def amend(self) -> CommandResult:
        """Rewrite the tip commit in place so the hook adds a Change-Id."""
        return self._git("commit", "--amend", "--no-edit")

    def push_for_review(self) -> CommandResult:
        logger.info("Proposing HEAD for review on %s", TARGET_BRANCH)
        return self._git("push", REMOTE_NAME, f"HEAD:refs/for/{TARGET_BRANCH}")

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def steps(self) -> list[tuple[str, Callable[[], CommandResult]]]:
        """Return ``(name, callable)`` pairs in execution order."""
        return [(name, getattr(self, name)) for name in SEED_STEPS]

    def run(self) -> list[StepResult]:
        """Run every step in order, logging and collecting outcomes."""
        results: list[StepResult] = []
        for name, step in self.steps():
            result = step()
            if result.ok:
                logger.debug("  %s ok", name)
                results.append(StepResult(name=name, ok=True))
            else:
                logger.warning(
                    "  %s failed (exit %d): %s", name, result.returncode, result.output
                )
                detail = f"exit {result.returncode}"
                if result.output:
                    detail += f": {result.output.splitlines()[-1]}"
                results.append(StepResult(name=name, ok=False, detail=detail))
        return results
