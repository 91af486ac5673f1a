"""
source.py

Responsibility: Get the Tinker sources onto disk.

A missing checkout is cloned; an existing one is updated with `git pull`.
There is no branch selection and no conflict handling: a failing pull stops
the run like any other failing command.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sciprov.shell import Shell

logger = logging.getLogger(__name__)


def clone_or_update(shell: Shell, *, repo_url: str, checkout_dir: Path) -> str:
    """
    Clone `repo_url` into `checkout_dir`, or pull if it already exists.

    Returns "cloned" or "updated".
    """
    if not checkout_dir.is_dir():
        logger.info("Cloning Tinker repository")
        checkout_dir.parent.mkdir(parents=True, exist_ok=True)
        shell.run(["git", "clone", repo_url, checkout_dir.name], cwd=checkout_dir.parent)
        return "cloned"

    logger.info("Tinker repository already exists, updating")
    shell.run(["git", "pull"], cwd=checkout_dir)
    return "updated"
