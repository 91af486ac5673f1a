"""
cli.py

Responsibility: CLI entrypoint for sciprov.

High-level flow (default command `all`):
1) Create the software directory and open the build log
2) Check / install the toolchain
3) Build Tinker from source
4) Install psi4 with conda and smoke-test it

This module should orchestrate behavior but keep concerns isolated:
- Configuration: `config.py`
- Toolchain: `prereqs.py`
- Tinker: `source.py`, `tinker.py`
- psi4: `conda.py`, `smoke.py`

Errors are raised where they are detected and turned into exit codes here,
once: 0 for success or a pending manual step, the failing command's own
status for `CommandError` (128+N when it was killed by signal N), 1 for
everything else, 130 on Ctrl-C.
"""

from __future__ import annotations

import argparse
import logging

from sciprov import __version__
from sciprov.conda import CondaError, install_psi4
from sciprov.config import ConfigError, InstallConfig, load_config
from sciprov.download import DownloadError
from sciprov.logs import setup_logging
from sciprov.prereqs import ManualActionRequired, PrerequisiteError, check_prerequisites, detect_tools
from sciprov.renderer import RenderError
from sciprov.shell import CommandError, Shell
from sciprov.smoke import SmokeTestError, run_smoke_test
from sciprov.tinker import BuildError, build_tinker

logger = logging.getLogger(__name__)

PROVISION_ERRORS = (
    ConfigError,
    PrerequisiteError,
    BuildError,
    CondaError,
    SmokeTestError,
    DownloadError,
    RenderError,
    OSError,
)


def _setup_directories(config: InstallConfig, *, verbose: bool) -> None:
    config.software_dir.mkdir(parents=True, exist_ok=True)
    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    config.log_file.touch(exist_ok=True)
    setup_logging(config.log_file, verbose=verbose)
    logger.info("Setting up directory structure")


def _psi4(shell: Shell, config: InstallConfig) -> None:
    conda = install_psi4(shell, config)
    run_smoke_test(shell, conda, config)


def all_cmd(args: argparse.Namespace, config: InstallConfig, shell: Shell) -> int:
    check_prerequisites(shell)

    logger.info("Starting build and installation process for Tinker and psi4")
    build_tinker(shell, config)
    _psi4(shell, config)

    logger.info("Build and installation process completed successfully!")
    logger.info("Tinker executables are in: %s", config.tinker_bin_dir)
    logger.info("psi4 is installed in the '%s' conda environment", config.env_name)
    logger.info("To use psi4, run: conda activate %s", config.env_name)
    logger.info("For detailed information, check the log file: %s", config.log_file)
    return 0


def tinker_cmd(args: argparse.Namespace, config: InstallConfig, shell: Shell) -> int:
    check_prerequisites(shell)
    build = build_tinker(shell, config)
    logger.info("Tinker executables are in: %s", build.bin_dir)
    return 0


def psi4_cmd(args: argparse.Namespace, config: InstallConfig, shell: Shell) -> int:
    _psi4(shell, config)
    logger.info("To use psi4, run: conda activate %s", config.env_name)
    return 0


def check_cmd(args: argparse.Namespace, config: InstallConfig, shell: Shell) -> int:
    report = detect_tools(shell)
    for tool in report.present:
        logger.info("found %s: %s", tool, shell.which(tool))
    for tool in report.missing:
        logger.warning("missing %s", tool)
    return 0 if report.ok else 1


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="sciprov", description="Build Tinker from source and install psi4 with conda")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--config", default=None, help="YAML file overriding the default configuration")
    p.add_argument("--software-dir", default=None, help="Install root (default: ~/software)")
    p.add_argument("-j", "--jobs", type=int, default=None, help="Parallel make jobs (default: 1)")
    p.add_argument(
        "--strict",
        dest="strict_smoke",
        action="store_true",
        default=None,
        help="Fail when the psi4 smoke test output lacks its success marker",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Also log every command that is run")

    sub = p.add_subparsers(dest="command")

    a = sub.add_parser("all", help="Check prerequisites, build Tinker, install psi4 (default)")
    a.set_defaults(func=all_cmd)

    t = sub.add_parser("tinker", help="Check prerequisites and build Tinker only")
    t.set_defaults(func=tinker_cmd)

    s = sub.add_parser("psi4", help="Install psi4 into its conda environment and smoke-test it")
    s.set_defaults(func=psi4_cmd)

    c = sub.add_parser("check", help="Report missing build tools without installing anything")
    c.set_defaults(func=check_cmd)

    p.set_defaults(func=all_cmd)
    return p


def main(argv: list[str] | None = None, *, shell: Shell | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        config = load_config(
            args.config,
            software_dir=args.software_dir,
            make_jobs=args.jobs,
            strict_smoke=args.strict_smoke,
        )
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    shell = shell or Shell()
    try:
        if args.func is not check_cmd:
            _setup_directories(config, verbose=args.verbose)
        return int(args.func(args, config, shell))
    except ManualActionRequired as e:
        logger.info("%s", e)
        return 0
    except CommandError as e:
        logger.error("%s", e)
        if e.returncode < 0:
            # Killed by a signal: report it the way a POSIX shell does.
            return 128 - e.returncode
        return e.returncode or 1
    except PROVISION_ERRORS as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
