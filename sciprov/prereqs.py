"""
prereqs.py

Responsibility: Make sure the build toolchain exists before anything is
cloned, built, or installed.

- macOS: Xcode Command Line Tools first (interactive; ends the run with
  `ManualActionRequired`), then Homebrew for gcc/gfortran/git.
- Linux: apt-get (through sudo unless already root) for the same tools.

Whatever is still missing afterwards raises `PrerequisiteError`, so no
destructive step starts with an incomplete toolchain.
"""

from __future__ import annotations

import logging
import os
import platform
import tempfile
from dataclasses import dataclass
from pathlib import Path

from sciprov.download import download_file
from sciprov.shell import Shell

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("gcc", "gfortran", "git", "make")
HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"


class PrerequisiteError(RuntimeError):
    pass


class ManualActionRequired(RuntimeError):
    """An interactive installer was started; the operator must re-run afterwards."""


@dataclass(frozen=True)
class ToolReport:
    present: tuple[str, ...]
    missing: tuple[str, ...]

    @property
    def ok(self) -> bool:
        return not self.missing


def detect_tools(shell: Shell, tools: tuple[str, ...] = REQUIRED_TOOLS) -> ToolReport:
    present = tuple(t for t in tools if shell.command_exists(t))
    missing = tuple(t for t in tools if t not in present)
    return ToolReport(present=present, missing=missing)


def _sudo_prefix() -> list[str]:
    geteuid = getattr(os, "geteuid", None)
    if geteuid is not None and geteuid() == 0:
        return []
    return ["sudo"]


def _ensure_homebrew(shell: Shell) -> None:
    if shell.command_exists("brew"):
        return
    logger.info("Installing Homebrew...")
    with tempfile.TemporaryDirectory(prefix="sciprov-brew-") as tmp:
        script = download_file(HOMEBREW_INSTALL_URL, Path(tmp) / "install.sh")
        shell.run(["/bin/bash", str(script)])
    for prefix in ("/opt/homebrew/bin", "/usr/local/bin"):
        if os.path.exists(os.path.join(prefix, "brew")):
            shell.prepend_path(prefix)
            break


def _ensure_xcode_tools(shell: Shell) -> None:
    """
    `xcode-select -p` prints the tools path and exits 0 only when the Command
    Line Tools are installed; otherwise start the interactive installer.
    """
    if not shell.command_exists("xcode-select"):
        raise PrerequisiteError("xcode-select not found on PATH; cannot check the Xcode Command Line Tools")
    selected = shell.run(["xcode-select", "-p"], check=False, capture=True)
    if selected.returncode == 0:
        return
    logger.warning("Xcode Command Line Tools not found. Installing...")
    shell.run(["xcode-select", "--install"], check=False)
    logger.warning("After Xcode Command Line Tools installation completes, please run this script again.")
    raise ManualActionRequired("Re-run after the Xcode Command Line Tools installer finishes.")


def _install_macos(shell: Shell, missing: tuple[str, ...]) -> None:
    if "gcc" in missing or "gfortran" in missing:
        logger.warning("GCC and/or gfortran not found. Installing via Homebrew...")
        _ensure_homebrew(shell)
        logger.info("Installing GCC (includes gfortran)...")
        shell.run(["brew", "install", "gcc"])

    if "git" in missing:
        _ensure_homebrew(shell)
        logger.info("Installing Git...")
        shell.run(["brew", "install", "git"])

    if "make" in missing:
        _ensure_homebrew(shell)
        logger.info("Installing make...")
        shell.run(["brew", "install", "make"])
        # Homebrew installs GNU make as `gmake`; the plain name lives in gnubin.
        prefix = shell.run(["brew", "--prefix", "make"], capture=True).stdout.strip()
        shell.prepend_path(Path(prefix) / "libexec" / "gnubin")


def _install_linux(shell: Shell, missing: tuple[str, ...]) -> None:
    if not shell.command_exists("apt-get"):
        raise PrerequisiteError(
            f"Missing tools ({', '.join(missing)}) and no supported package manager (apt-get) was found."
        )
    packages = [name for name in ("gcc", "gfortran", "git", "make") if name in missing]
    logger.warning("Installing %s via apt-get...", ", ".join(packages))
    sudo = _sudo_prefix()
    shell.run([*sudo, "apt-get", "update"])
    shell.run([*sudo, "apt-get", "install", "-y", *packages])


def check_prerequisites(shell: Shell, *, install: bool = True, system: str | None = None) -> ToolReport:
    """
    Detect the toolchain and, with `install`, install what is missing.

    Raises `ManualActionRequired` when an interactive installer was launched
    and `PrerequisiteError` when a required tool is still absent.
    """
    logger.info("Checking prerequisites")
    system = system or platform.system()

    report = detect_tools(shell)
    if system == "Darwin" and install:
        _ensure_xcode_tools(shell)
        if report.ok:
            return report
        _install_macos(shell, report.missing)
    elif report.ok:
        return report
    elif install and system == "Linux":
        _install_linux(shell, report.missing)
    elif install:
        raise PrerequisiteError(f"Unsupported platform for automatic installation: {system}")

    report = detect_tools(shell)
    if not report.ok:
        raise PrerequisiteError(f"Required tools not found on PATH: {', '.join(report.missing)}")
    return report
