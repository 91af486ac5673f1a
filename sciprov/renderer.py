"""
renderer.py

Responsibility: Render the small text files a run writes out (the psi4 smoke
test input, the shell-profile lines for Miniconda) from the Jinja2 templates
bundled in `sciprov/templates/`.

Rules:
- Undefined template variables are errors, never silently empty.
- Output keeps the template's trailing newline and is written as UTF-8 with
  `\n` line endings.

This module intentionally does NOT know about conda, psi4, or the CLI.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError


class RenderError(RuntimeError):
    pass


_env = Environment(
    loader=PackageLoader("sciprov", "templates"),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def render_text(template_name: str, context: dict[str, Any]) -> str:
    try:
        return _env.get_template(template_name).render(**context)
    except TemplateError as e:
        raise RenderError(f"Failed rendering template: {template_name}") from e


def render_to_file(template_name: str, destination: str | Path, context: dict[str, Any]) -> Path:
    """
    Render `template_name` into `destination`, creating parent directories.
    An existing file is overwritten.
    """
    out = render_text(template_name, context)
    dst_path = Path(destination)
    dst_path.parent.mkdir(parents=True, exist_ok=True)
    dst_path.write_text(out, encoding="utf-8", newline="\n")
    return dst_path
