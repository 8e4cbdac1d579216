# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Domain-specific exception hierarchy for the Gerrit test provisioner.

The provisioning workflow is failure-blind: a failing ``git push`` or a
rejected REST call is logged and the next step runs anyway.  Exceptions
are reserved for conditions that make every later step pointless, such
as a missing executable or an unusable configuration.  All of them
inherit from :class:`ProvisionError` so the CLI entry point can catch
them in one place.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base exception for all provisioning errors."""


class CommandError(ProvisionError):
    """An external command could not be run, or failed when checked.

    Attributes:
        returncode: Exit code returned by the process (``-1`` if the
            process never started).
        stderr: Standard error output captured from the process.
    """

    def __init__(self, message: str, returncode: int = 1, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            return f"{base}\nstderr: {self.stderr.strip()}"
        return base


class ConfigError(ProvisionError):
    """Invalid or missing configuration."""
