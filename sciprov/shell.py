"""
shell.py

Responsibility: Run external commands for the provisioning steps.

Every step talks to the outside world (compilers, git, make, conda, brew)
through a `Shell`. The shell owns a private copy of the process environment,
so `export`-style changes made during a run (PATH, CC, F77) are visible to
later commands without leaking into the caller's `os.environ`.

Failures are fail-fast: a nonzero exit raises `CommandError`, which carries
the command's return code up to the CLI.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    def __init__(self, cmd: Sequence[str], returncode: int, output: str = "") -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        message = f"Command failed with exit status {returncode}: {' '.join(self.cmd)}"
        if output:
            message = f"{message}\n\n{output.rstrip()}"
        super().__init__(message)


class Shell:
    def __init__(self, env: dict[str, str] | None = None) -> None:
        self.env: dict[str, str] = dict(os.environ if env is None else env)

    def setenv(self, name: str, value: str) -> None:
        self.env[name] = value

    def prepend_path(self, directory: str | Path) -> None:
        """
        Put `directory` first on this shell's PATH (no-op if it already is).
        """
        entry = str(directory)
        parts = [p for p in self.env.get("PATH", "").split(os.pathsep) if p]
        if parts and parts[0] == entry:
            return
        self.env["PATH"] = os.pathsep.join([entry, *parts])

    def which(self, name: str) -> str | None:
        return shutil.which(name, path=self.env.get("PATH", ""))

    def command_exists(self, name: str) -> bool:
        return self.which(name) is not None

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: str | Path | None = None,
        check: bool = True,
        capture: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        """
        Run `cmd` (an argv list, never through a system shell).

        With `capture`, stdout and stderr are merged and returned as text;
        otherwise the command writes straight to the terminal.
        """
        argv = [str(part) for part in cmd]
        logger.debug("$ %s%s", " ".join(argv), f"  (in {cwd})" if cwd else "")
        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                env=self.env,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.STDOUT if capture else None,
                text=True,
            )
        except FileNotFoundError as e:
            # Same status a POSIX shell reports for "command not found".
            raise CommandError(argv, 127, str(e)) from e
        if check and completed.returncode != 0:
            raise CommandError(argv, completed.returncode, completed.stdout or "")
        return completed
