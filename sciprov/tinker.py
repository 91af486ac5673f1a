"""
tinker.py

Responsibility: Build Tinker from an existing checkout.

High-level flow:
1) Build the FFTW copy bundled in `<tinker>/fftw` and check its static libs
2) Copy `make/Makefile` into `source/`, keep a backup, point BUILDDIR at the
   checkout
3) `make all` + `make install` in `source/`
4) Check that `bin/analyze` was installed

Only the existence of the expected files is checked; make's own exit status
is handled by the shell's fail-fast behavior.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from sciprov.config import InstallConfig
from sciprov.shell import Shell
from sciprov.source import clone_or_update

logger = logging.getLogger(__name__)

FFTW_LIBRARIES = ("libfftw3.a", "libfftw3_threads.a")
MAKEFILE_BUILDDIR_LINE = "BUILDDIR = $(HOME)/ffe/build"
VERIFY_EXECUTABLE = "analyze"


class BuildError(RuntimeError):
    pass


@dataclass(frozen=True)
class TinkerBuild:
    checkout: str
    bin_dir: Path
    executable: Path


def _make(shell: Shell, target: str | None, *, cwd: Path, jobs: int) -> None:
    cmd = ["make"]
    if jobs > 1:
        cmd.append(f"-j{jobs}")
    if target:
        cmd.append(target)
    shell.run(cmd, cwd=cwd)


def build_fftw(shell: Shell, tinker_dir: Path, *, jobs: int = 1) -> Path:
    """Configure and install FFTW into its own source directory; return its lib dir."""
    logger.info("Building FFTW library")
    fftw_dir = (tinker_dir / "fftw").resolve()
    if not fftw_dir.is_dir():
        raise BuildError(f"FFTW sources not found: {fftw_dir}")

    shell.setenv("CC", "gcc")
    shell.setenv("F77", "gfortran")

    shell.run(["make", "distclean"], cwd=fftw_dir, check=False)
    shell.run(
        ["./configure", f"--prefix={fftw_dir}", "--enable-threads", "--enable-openmp"],
        cwd=fftw_dir,
    )
    _make(shell, None, cwd=fftw_dir, jobs=jobs)
    _make(shell, "install", cwd=fftw_dir, jobs=1)

    lib_dir = fftw_dir / "lib"
    missing = [name for name in FFTW_LIBRARIES if not (lib_dir / name).is_file()]
    if missing:
        raise BuildError("FFTW libraries were not built successfully. Check the log for details.")
    return lib_dir


def substitute_builddir(text: str, build_dir: Path) -> tuple[str, bool]:
    """
    Replace the stock `BUILDDIR = $(HOME)/ffe/build` line with `build_dir`.

    Returns the new text and whether a substitution happened.
    """
    replacement = f"BUILDDIR = {build_dir}"
    if MAKEFILE_BUILDDIR_LINE not in text:
        return text, False
    return text.replace(MAKEFILE_BUILDDIR_LINE, replacement), True


def prepare_makefile(tinker_dir: Path) -> Path:
    """
    Copy `make/Makefile` into `source/`, back it up as `Makefile.backup`, and
    rewrite BUILDDIR to the absolute checkout path.
    """
    logger.info("Preparing Makefile for Tinker compilation")
    tinker_dir = tinker_dir.resolve()
    template = tinker_dir / "make" / "Makefile"
    source_dir = tinker_dir / "source"
    if not template.is_file():
        raise BuildError(f"Makefile template not found: {template}")

    makefile = source_dir / "Makefile"
    shutil.copyfile(template, makefile)
    shutil.copyfile(makefile, source_dir / "Makefile.backup")

    logger.info("Modifying Makefile paths")
    text = makefile.read_text(encoding="utf-8")
    new_text, changed = substitute_builddir(text, tinker_dir)
    if changed:
        makefile.write_text(new_text, encoding="utf-8")
    else:
        logger.warning("BUILDDIR line not found in %s; leaving it unchanged", makefile)
    return makefile


def verify_install(bin_dir: Path) -> Path:
    logger.info("Testing Tinker installation")
    executable = bin_dir / VERIFY_EXECUTABLE
    if not executable.is_file():
        raise BuildError(f"Tinker installation failed: {VERIFY_EXECUTABLE} executable not found")
    logger.info("Tinker installation verified: %s executable exists", VERIFY_EXECUTABLE)
    return executable


def build_tinker(shell: Shell, config: InstallConfig) -> TinkerBuild:
    logger.info("Starting Tinker build process")
    checkout = clone_or_update(shell, repo_url=config.tinker_repo_url, checkout_dir=config.tinker_dir)

    build_fftw(shell, config.tinker_dir, jobs=config.make_jobs)
    makefile = prepare_makefile(config.tinker_dir)

    config.tinker_bin_dir.mkdir(parents=True, exist_ok=True)

    logger.info("Building Tinker (this may take a while)")
    _make(shell, "all", cwd=makefile.parent, jobs=config.make_jobs)

    logger.info("Installing Tinker executables")
    _make(shell, "install", cwd=makefile.parent, jobs=1)
    logger.info("Tinker has been built successfully!")

    executable = verify_install(config.tinker_bin_dir)
    return TinkerBuild(checkout=checkout, bin_dir=config.tinker_bin_dir, executable=executable)
