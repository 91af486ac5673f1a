from __future__ import annotations

import logging
from pathlib import Path

import pytest

from sciprov.config import InstallConfig, build_config
from sciprov.logs import ROOT_LOGGER


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root_logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def config(tmp_path: Path) -> InstallConfig:
    return build_config(
        {
            "software_dir": tmp_path / "software",
            "shell_profile": tmp_path / "home" / ".bash_profile",
            "miniconda_installer": "Miniconda3-latest-Linux-x86_64.sh",
        }
    )
