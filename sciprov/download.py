"""
download.py

Responsibility: Fetch installer scripts over HTTPS.

This module must be the only place that sends HTTP requests. Callers get a
file on disk or a `DownloadError`; they never see `requests` objects.
"""

from __future__ import annotations

import logging
from pathlib import Path

import requests

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class DownloadError(RuntimeError):
    pass


def download_file(url: str, destination: str | Path, *, timeout: int = 60) -> Path:
    """
    Stream `url` into `destination` (overwriting it) and return the path.

    The body is written to `<destination>.part` first and renamed on
    success, so an interrupted download never leaves a truncated installer
    under the final name.
    """
    dst_path = Path(destination)
    dst_path.parent.mkdir(parents=True, exist_ok=True)
    partial = dst_path.with_name(dst_path.name + ".part")

    logger.debug("GET %s -> %s", url, dst_path)
    try:
        with requests.get(url, stream=True, timeout=timeout, headers={"User-Agent": "sciprov"}) as r:
            if r.status_code >= 400:
                raise DownloadError(f"Download failed with HTTP {r.status_code}: {url}")
            with partial.open("wb") as handle:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
    except requests.RequestException as e:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Download failed: {url}: {e}") from e

    partial.replace(dst_path)
    return dst_path
