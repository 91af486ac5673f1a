"""
sciprov package

This package provisions a scientific workstation with Tinker (built from
source) and psi4 (installed into a conda environment), as a CLI-first utility.

Key responsibilities are split across modules:
- `config.py`: defaults plus optional YAML overrides -> `InstallConfig`
- `logs.py`: colored console + append-only timestamped log file
- `shell.py`: external command execution with fail-fast semantics
- `prereqs.py`: compiler / git / package-manager detection and installation
- `source.py`: clone-or-pull of the Tinker repository
- `tinker.py`: FFTW build, Makefile templating, Tinker build and verification
- `conda.py`: Miniconda bootstrap, environment creation, psi4 installation
- `smoke.py`: psi4 smoke test
- `renderer.py`: Jinja2 rendering of the bundled text templates
- `cli.py`: CLI entrypoint and orchestration (check -> tinker -> psi4)
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
