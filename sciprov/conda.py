"""
conda.py

Responsibility: Everything that goes through conda.

- Locate a usable `conda`, or bootstrap Miniconda (download, silent install,
  `conda init bash`, two lines appended to the shell profile)
- Create the named environment with a pinned Python, unless it exists
- Add channels and install the requested packages into it

Installed package versions are not compared against expectations; an
existing environment is reused as-is.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from sciprov.config import InstallConfig
from sciprov.download import download_file
from sciprov.renderer import render_text
from sciprov.shell import Shell

logger = logging.getLogger(__name__)

PROFILE_TEMPLATE = "shell_profile.j2"


class CondaError(RuntimeError):
    pass


def locate_conda(shell: Shell, miniconda_dir: Path) -> str | None:
    found = shell.which("conda")
    if found:
        return found
    candidate = miniconda_dir / "bin" / "conda"
    if candidate.is_file():
        return str(candidate)
    return None


def register_shell_profile(profile: Path, miniconda_dir: Path) -> bool:
    """
    Append the Miniconda export/PATH lines to `profile`.

    Returns False (and leaves the file alone) when the lines are already there.
    """
    block = render_text(PROFILE_TEMPLATE, {"miniconda_dir": str(miniconda_dir)})
    existing = profile.read_text(encoding="utf-8") if profile.exists() else ""
    if block.strip() in existing:
        return False

    profile.parent.mkdir(parents=True, exist_ok=True)
    with profile.open("a", encoding="utf-8") as handle:
        if existing and not existing.endswith("\n"):
            handle.write("\n")
        handle.write(block)
    return True


def install_miniconda(shell: Shell, config: InstallConfig) -> str:
    """Download and silently install Miniconda into `config.miniconda_dir`."""
    logger.info("Installing Miniconda")
    installer = download_file(config.miniconda_url, config.software_dir / config.installer_name)

    shell.run(["bash", str(installer), "-b", "-p", str(config.miniconda_dir)], cwd=config.software_dir)
    shell.prepend_path(config.miniconda_dir / "bin")

    conda = str(config.miniconda_dir / "bin" / "conda")
    if not Path(conda).is_file():
        raise CondaError(f"conda executable not found after installation: {conda}")
    shell.run([conda, "init", "bash"])
    if register_shell_profile(config.shell_profile, config.miniconda_dir):
        logger.info("Registered Miniconda in %s", config.shell_profile)

    logger.info(
        "Miniconda installed. You may need to restart your terminal or run 'source %s' to use conda.",
        config.shell_profile,
    )
    return conda


def ensure_conda(shell: Shell, config: InstallConfig) -> str:
    conda = locate_conda(shell, config.miniconda_dir)
    if conda is None:
        conda = install_miniconda(shell, config)
    else:
        logger.info("Conda is already installed")

    shell.prepend_path(config.miniconda_dir / "bin")
    return conda


def list_envs(shell: Shell, conda: str) -> list[str]:
    """Return the names (last path component) of all known conda environments."""
    result = shell.run([conda, "env", "list", "--json"], capture=True)
    try:
        payload = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        raise CondaError("Could not parse `conda env list --json` output") from e
    return [Path(p).name for p in payload.get("envs", [])]


def env_exists(shell: Shell, conda: str, name: str) -> bool:
    return name in list_envs(shell, conda)


def ensure_env(shell: Shell, conda: str, *, name: str, python_version: str) -> bool:
    """
    Create environment `name` with `python=<python_version>`.

    Returns False when the environment already existed and creation was skipped.
    """
    if env_exists(shell, conda, name):
        logger.warning("psi4 environment '%s' already exists. Skipping creation.", name)
        return False
    logger.info("Creating conda environment for psi4")
    shell.run([conda, "create", "-y", "-n", name, f"python={python_version}"])
    return True


def install_packages(shell: Shell, conda: str, *, env_name: str, channels: tuple[str, ...], packages: tuple[str, ...]) -> None:
    logger.info("Adding necessary conda channels")
    for channel in channels:
        shell.run([conda, "config", "--add", "channels", channel])

    logger.info("Installing %s in the '%s' environment", " ".join(packages), env_name)
    shell.run([conda, "install", "-y", "-n", env_name, *packages])


def install_psi4(shell: Shell, config: InstallConfig) -> str:
    """Bootstrap conda if needed and install psi4 into `config.env_name`; return the conda path."""
    logger.info("Starting psi4 installation process")
    conda = ensure_conda(shell, config)
    ensure_env(shell, conda, name=config.env_name, python_version=config.python_version)
    install_packages(
        shell,
        conda,
        env_name=config.env_name,
        channels=config.channels,
        packages=config.packages,
    )
    logger.info("psi4 has been installed successfully!")
    return conda

