"""
config.py

Responsibility: Produce the single `InstallConfig` that drives a run.

Without a config file every value matches the stock workstation layout
(`~/software`, `psi4env`, Python 3.9, ...). A YAML file can override any
field; derived paths follow `software_dir` unless they are set explicitly.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml


class ConfigError(ValueError):
    pass


TINKER_REPO_URL = "https://github.com/TinkerTools/Tinker.git"
MINICONDA_BASE_URL = "https://repo.anaconda.com/miniconda"

_INSTALLER_OS = {"Darwin": "MacOSX", "Linux": "Linux"}
_INSTALLER_ARCH = {
    ("MacOSX", "x86_64"): "x86_64",
    ("MacOSX", "AMD64"): "x86_64",
    ("MacOSX", "arm64"): "arm64",
    ("MacOSX", "aarch64"): "arm64",
    ("Linux", "x86_64"): "x86_64",
    ("Linux", "AMD64"): "x86_64",
    ("Linux", "arm64"): "aarch64",
    ("Linux", "aarch64"): "aarch64",
}

_PATH_FIELDS = ("software_dir", "tinker_dir", "log_file", "miniconda_dir", "smoke_dir", "shell_profile")
_LIST_FIELDS = ("channels", "packages")


def miniconda_installer_name(system: str | None = None, machine: str | None = None) -> str:
    """
    Return the Miniconda installer file name for a host, e.g.
    `Miniconda3-latest-MacOSX-x86_64.sh`.
    """
    system = system or platform.system()
    machine = machine or platform.machine()
    os_name = _INSTALLER_OS.get(system)
    arch = _INSTALLER_ARCH.get((os_name, machine)) if os_name else None
    if os_name is None or arch is None:
        raise ConfigError(f"No Miniconda installer for host {system}/{machine}")
    return f"Miniconda3-latest-{os_name}-{arch}.sh"


@dataclass(frozen=True)
class InstallConfig:
    """Everything a provisioning run needs to know; no other module hard-codes paths."""

    software_dir: Path
    tinker_dir: Path
    log_file: Path
    miniconda_dir: Path
    smoke_dir: Path
    shell_profile: Path
    miniconda_installer: str = ""
    tinker_repo_url: str = TINKER_REPO_URL
    make_jobs: int = 1
    miniconda_base_url: str = MINICONDA_BASE_URL
    env_name: str = "psi4env"
    python_version: str = "3.9"
    channels: tuple[str, ...] = ("conda-forge", "psi4")
    packages: tuple[str, ...] = ("psi4", "psi4-rt")
    smoke_marker: str = "Hartree"
    strict_smoke: bool = False

    @property
    def installer_name(self) -> str:
        return self.miniconda_installer or miniconda_installer_name()

    @property
    def miniconda_url(self) -> str:
        return f"{self.miniconda_base_url.rstrip('/')}/{self.installer_name}"

    @property
    def tinker_bin_dir(self) -> Path:
        return self.tinker_dir / "bin"


def _expand(value: Any) -> Path:
    return Path(str(value)).expanduser()


def build_config(overrides: dict[str, Any] | None = None) -> InstallConfig:
    """
    Build an `InstallConfig` from defaults plus `overrides`.

    Derived paths (tinker_dir, log_file, miniconda_dir, smoke_dir) are computed
    from the final `software_dir` unless overridden themselves.
    """
    data = dict(overrides or {})
    known = {f.name for f in fields(InstallConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

    for key in _PATH_FIELDS:
        if data.get(key) is not None:
            data[key] = _expand(data[key])
    for key in _LIST_FIELDS:
        if key in data:
            raw = data[key]
            if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
                raise ConfigError(f"`{key}` must be a list of strings.")
            data[key] = tuple(str(item) for item in raw)

    if "make_jobs" in data:
        try:
            data["make_jobs"] = int(data["make_jobs"])
        except (TypeError, ValueError) as e:
            raise ConfigError("`make_jobs` must be an integer.") from e
        if data["make_jobs"] < 1:
            raise ConfigError("`make_jobs` must be at least 1.")

    for key in ("python_version", "env_name", "smoke_marker", "tinker_repo_url", "miniconda_base_url"):
        if key in data:
            data[key] = str(data[key]).strip()
            if not data[key]:
                raise ConfigError(f"`{key}` must not be empty.")

    software_dir = data.pop("software_dir", None) or _expand("~/software")
    defaults = {
        "tinker_dir": software_dir / "tinker",
        "log_file": software_dir / "build_log.txt",
        "miniconda_dir": software_dir / "miniconda3",
        "smoke_dir": software_dir / "psi4_test",
        "shell_profile": _expand("~/.bash_profile"),
    }
    for key, value in defaults.items():
        if data.get(key) is None:
            data[key] = value
    return InstallConfig(software_dir=software_dir, **data)


def load_config(config_path: str | Path | None = None, **cli_overrides: Any) -> InstallConfig:
    """
    Load configuration from an optional YAML file, then apply CLI overrides
    (keys whose value is None are ignored).
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file does not exist: {path}")
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError("Config file must be a mapping/object at the top level.")
        data.update(loaded)

    data.update({k: v for k, v in cli_overrides.items() if v is not None})
    return build_config(data)

