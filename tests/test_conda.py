from __future__ import annotations

import json
from pathlib import Path

import pytest

from sciprov import conda as conda_mod
from sciprov.conda import (
    CondaError,
    ensure_conda,
    ensure_env,
    install_packages,
    install_psi4,
    list_envs,
    locate_conda,
    register_shell_profile,
)
from sciprov.config import InstallConfig
from tests.fakes import CondaState, FakeShell

CONDA = "/usr/bin/conda"


@pytest.fixture
def fake_download(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, Path]]:
    fetched: list[tuple[str, Path]] = []

    def download(url: str, destination: Path) -> Path:
        fetched.append((url, destination))
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text("#!/bin/bash\n", encoding="utf-8")
        return destination

    monkeypatch.setattr(conda_mod, "download_file", download)
    return fetched


def _silent_install(argv, cwd) -> None:
    prefix = Path(argv[argv.index("-p") + 1])
    (prefix / "bin").mkdir(parents=True)
    (prefix / "bin" / "conda").write_text("#!/bin/sh\n", encoding="utf-8")


def test_register_shell_profile_appends_once(tmp_path: Path) -> None:
    profile = tmp_path / ".bash_profile"
    profile.write_text("alias ll='ls -l'", encoding="utf-8")
    miniconda = tmp_path / "software" / "miniconda3"

    assert register_shell_profile(profile, miniconda)
    assert not register_shell_profile(profile, miniconda)

    lines = profile.read_text(encoding="utf-8").splitlines()
    assert lines == [
        "alias ll='ls -l'",
        f'export CONDA_HOME="{miniconda}"',
        'export PATH="$CONDA_HOME/bin:$PATH"',
    ]


def test_register_shell_profile_creates_file(tmp_path: Path) -> None:
    profile = tmp_path / "home" / ".bash_profile"
    assert register_shell_profile(profile, tmp_path / "mc")
    assert len(profile.read_text(encoding="utf-8").splitlines()) == 2


def test_locate_conda(tmp_path: Path) -> None:
    assert locate_conda(FakeShell(tools=["conda"]), tmp_path) == CONDA
    assert locate_conda(FakeShell(), tmp_path) is None

    (tmp_path / "bin").mkdir()
    (tmp_path / "bin" / "conda").write_text("", encoding="utf-8")
    assert locate_conda(FakeShell(), tmp_path) == str(tmp_path / "bin" / "conda")


def test_ensure_conda_uses_existing(config: InstallConfig, fake_download) -> None:
    shell = FakeShell(tools=["conda"])
    assert ensure_conda(shell, config) == CONDA
    assert shell.calls == []
    assert fake_download == []
    assert shell.env["PATH"].startswith(str(config.miniconda_dir / "bin"))


def test_ensure_conda_bootstraps_miniconda(config: InstallConfig, fake_download) -> None:
    shell = FakeShell()
    shell.on("bash", effect=_silent_install)

    conda = ensure_conda(shell, config)

    installer = config.software_dir / config.installer_name
    assert fake_download == [(config.miniconda_url, installer)]
    assert conda == str(config.miniconda_dir / "bin" / "conda")
    assert shell.commands == [
        ["bash", str(installer), "-b", "-p", str(config.miniconda_dir)],
        [conda, "init", "bash"],
    ]
    assert str(config.miniconda_dir) in config.shell_profile.read_text(encoding="utf-8")


def test_ensure_conda_fails_when_install_produces_nothing(config: InstallConfig, fake_download) -> None:
    shell = FakeShell()
    shell.on("bash")
    with pytest.raises(CondaError):
        ensure_conda(shell, config)


def test_list_envs(tmp_path: Path) -> None:
    shell = FakeShell(tools=["conda"])
    shell.on("conda", "env", "list", stdout=json.dumps({"envs": ["/opt/mc", "/opt/mc/envs/psi4env"]}))
    assert list_envs(shell, CONDA) == ["mc", "psi4env"]


def test_list_envs_garbage() -> None:
    shell = FakeShell(tools=["conda"])
    shell.on("conda", "env", "list", stdout="not json")
    with pytest.raises(CondaError):
        list_envs(shell, CONDA)


def test_ensure_env_creates(tmp_path: Path) -> None:
    shell = FakeShell(tools=["conda"])
    CondaState(shell, tmp_path).install()

    assert ensure_env(shell, CONDA, name="psi4env", python_version="3.9")
    assert [CONDA, "create", "-y", "-n", "psi4env", "python=3.9"] in shell.commands


def test_ensure_env_skips_existing(tmp_path: Path) -> None:
    shell = FakeShell(tools=["conda"])
    CondaState(shell, tmp_path, envs=["psi4env"]).install()

    assert not ensure_env(shell, CONDA, name="psi4env", python_version="3.9")
    assert not shell.ran("conda", "create")


def test_install_packages_order() -> None:
    shell = FakeShell(tools=["conda"])
    install_packages(shell, CONDA, env_name="psi4env", channels=("conda-forge", "psi4"), packages=("psi4", "psi4-rt"))
    assert shell.commands == [
        [CONDA, "config", "--add", "channels", "conda-forge"],
        [CONDA, "config", "--add", "channels", "psi4"],
        [CONDA, "install", "-y", "-n", "psi4env", "psi4", "psi4-rt"],
    ]


def test_install_psi4_twice_is_idempotent(config: InstallConfig) -> None:
    shell = FakeShell(tools=["conda"])
    CondaState(shell, config.miniconda_dir).install()

    install_psi4(shell, config)
    install_psi4(shell, config)

    creates = [argv for argv in shell.commands if argv[1:2] == ["create"]]
    installs = [argv for argv in shell.commands if argv[1:2] == ["install"]]
    assert len(creates) == 1
    assert len(installs) == 2
