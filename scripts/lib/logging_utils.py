# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Logging setup for the provisioning scripts.

Provides :func:`setup_logging`, which configures the root logger with a
consistent format and honours the ``DEBUG`` environment variable, and
:func:`log_step`, which prints a numbered banner before each stage of
the provisioning workflow.

Usage::

    from logging_utils import log_step, setup_logging
    setup_logging()                  # reads DEBUG from env
    log_step(1, 5, "Waiting for Gerrit")
"""

from __future__ import annotations

import logging
import os
import sys

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _GitHubActionsFormatter(logging.Formatter):
    """Formatter that adds workflow annotations for warnings and errors.

    The provisioner usually runs inside a test container, but the same
    container is started from CI jobs; there, warnings and errors are
    prefixed with ``::warning::`` / ``::error::`` so they surface in the
    workflow UI.
    """

    _GH_LEVEL_MAP = {
        logging.WARNING: "warning",
        logging.ERROR: "error",
        logging.CRITICAL: "error",
    }

    def __init__(self) -> None:
        super().__init__(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        gh_level = self._GH_LEVEL_MAP.get(record.levelno)
        if gh_level:
            return f"::{gh_level}::{record.getMessage()}\n{formatted}"
        return formatted


def setup_logging(debug: bool | None = None) -> None:
    """Configure the root logger.

    Parameters
    ----------
    debug:
        *True* selects ``DEBUG``, *False* selects ``INFO``.  With *None*
        (the default) the ``DEBUG`` environment variable decides:
        ``"true"`` (case-insensitive) selects debug level.

    Calling this more than once replaces the installed handler instead
    of stacking duplicates.
    """
    if debug is None:
        debug = os.environ.get("DEBUG", "false").lower() == "true"

    handler = logging.StreamHandler(sys.stderr)
    if os.environ.get("GITHUB_ACTIONS") == "true":
        handler.setFormatter(_GitHubActionsFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.addHandler(handler)


def format_step(index: int, total: int, title: str) -> str:
    """Return the banner text for step *index* of *total*."""
    return f"[{index}/{total}] {title}"


def log_step(index: int, total: int, title: str) -> None:
    """Print a banner announcing the next provisioning step."""
    print(f"\n{'=' * 40}", file=sys.stderr)
    print(f"  {format_step(index, total, title)}", file=sys.stderr)
    print(f"{'=' * 40}", file=sys.stderr)
