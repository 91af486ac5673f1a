from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Callable, Sequence

from sciprov.shell import CommandError, Shell

Effect = Callable[[list[str], "Path | None"], None]


class FakeShell(Shell):
    """
    A Shell that records commands instead of running them.

    `tools` is the set of executables `which` reports as present. Rules added
    with `on(...)` match an argv prefix (the first element by basename) and
    can set a return code, captured output, and a side effect. Like the real
    Shell, an executable that is neither in `tools`, an existing file, nor
    covered by a rule fails with status 127.
    """

    def __init__(self, tools: Sequence[str] = ()) -> None:
        super().__init__(env={"PATH": "/usr/bin"})
        self.tools = set(tools)
        self.calls: list[tuple[list[str], Path | None]] = []
        self._rules: list[tuple[tuple[str, ...], Effect | None, int, str]] = []

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.tools else None

    def on(self, *prefix: str, effect: Effect | None = None, returncode: int = 0, stdout: str = "") -> None:
        self._rules.append((tuple(prefix), effect, returncode, stdout))

    def _available(self, executable: str) -> bool:
        if "/" in executable:
            return Path(executable).is_file() or any(self.which(t) == executable for t in self.tools)
        return executable in self.tools

    @staticmethod
    def _matches(prefix: tuple[str, ...], argv: list[str]) -> bool:
        if len(argv) < len(prefix):
            return False
        head = Path(argv[0]).name if "/" not in prefix[0] else argv[0]
        return (head, *argv[1 : len(prefix)]) == prefix

    def run(self, cmd, *, cwd=None, check=True, capture=False):
        argv = [str(part) for part in cmd]
        cwd_path = Path(cwd) if cwd else None
        self.calls.append((argv, cwd_path))
        for prefix, effect, rc, out in self._rules:
            if self._matches(prefix, argv):
                if effect is not None:
                    effect(argv, cwd_path)
                returncode, stdout = rc, out
                break
        else:
            if not self._available(argv[0]):
                raise CommandError(argv, 127, f"{argv[0]}: command not found")
            returncode, stdout = 0, ""
        if check and returncode != 0:
            raise CommandError(argv, returncode, stdout)
        return subprocess.CompletedProcess(argv, returncode, stdout=stdout)

    @property
    def commands(self) -> list[list[str]]:
        return [argv for argv, _cwd in self.calls]

    def ran(self, *prefix: str) -> bool:
        return any(self._matches(tuple(prefix), argv) for argv in self.commands)


TOOLCHAIN = ("gcc", "gfortran", "git", "make")

STOCK_MAKEFILE = """\
#  Makefile for Tinker
BUILDDIR = $(HOME)/ffe/build
BINDIR = $(BUILDDIR)/bin

all:
\techo building
"""


def make_checkout(tinker_dir: Path, makefile: str = STOCK_MAKEFILE) -> Path:
    (tinker_dir / "fftw").mkdir(parents=True)
    (tinker_dir / "make").mkdir()
    (tinker_dir / "source").mkdir()
    (tinker_dir / "make" / "Makefile").write_text(makefile, encoding="utf-8")
    return tinker_dir


def simulate_builds(shell: FakeShell, tinker_dir: Path) -> None:
    """`make install` drops FFTW libs in fftw/lib and `analyze` in bin/."""

    def make_install(argv: list[str], cwd: Path | None) -> None:
        assert cwd is not None
        if cwd.name == "fftw":
            (cwd / "lib").mkdir(exist_ok=True)
            (cwd / "lib" / "libfftw3.a").write_bytes(b"")
            (cwd / "lib" / "libfftw3_threads.a").write_bytes(b"")
        elif cwd.name == "source":
            (tinker_dir / "bin" / "analyze").write_bytes(b"")

    shell.on("make", "install", effect=make_install)
    shell.on("./configure")


def simulate_clone(shell: FakeShell) -> None:
    def clone(argv: list[str], cwd: Path | None) -> None:
        assert cwd is not None
        make_checkout(cwd / argv[-1])

    shell.on("git", "clone", effect=clone)


class CondaState:
    """Tracks environments so `conda create` is visible to later `env list` calls."""

    def __init__(self, shell: FakeShell, prefix: Path, envs: Sequence[str] = ()) -> None:
        self.shell = shell
        self.prefix = prefix
        self.envs = list(envs)

    def install(self) -> None:
        self.shell.on("conda", "create", effect=self._create)
        self.shell.on("conda", "env", "list", "--json", stdout=self.payload())

    def payload(self) -> str:
        return json.dumps({"envs": [str(self.prefix)] + [str(self.prefix / "envs" / e) for e in self.envs]})

    def _create(self, argv: list[str], cwd: Path | None) -> None:
        self.envs.append(argv[argv.index("-n") + 1])
        rules = self.shell._rules
        for i, (prefix, effect, rc, _out) in enumerate(rules):
            if prefix == ("conda", "env", "list", "--json"):
                rules[i] = (prefix, effect, rc, self.payload())
