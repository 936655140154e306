"""Renders the ordered backend list into proxy configuration bytes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import jinja2

from ..discovery.models import BackendEndpoint
from ..exceptions import RenderError

logger = logging.getLogger(__name__)

TemplateFunction = Callable[[list[BackendEndpoint]], bytes]


class JinjaTemplate:
    """Template function backed by a Jinja2 template file.

    The file is loaded on every call so a corrected template is picked up
    on the next tick without restarting the daemon. The template sees the
    ordered list as ``backends``; every entry has ``host``/``port`` (and
    ``Node``/``Port``).
    """

    def __init__(self, path: str | Path, encoding: str = "utf-8"):
        self._path = Path(path)
        self._encoding = encoding
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(self._path.parent)),
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
            cache_size=0,
        )

    @property
    def path(self) -> Path:
        return self._path

    def __call__(self, backends: list[BackendEndpoint]) -> bytes:
        try:
            template = self._env.get_template(self._path.name)
            return template.render(backends=backends).encode(self._encoding)
        except jinja2.TemplateError as exc:
            raise RenderError(f"Template {self._path} failed: {exc}") from exc
        except OSError as exc:
            raise RenderError(f"Cannot read template {self._path}: {exc}") from exc


class ConfigRenderer:
    """Pure wrapper around a template function: same input, same bytes."""

    def __init__(self, template: TemplateFunction):
        self._template = template

    def render(self, endpoints: list[BackendEndpoint]) -> bytes:
        try:
            rendered = self._template(list(endpoints))
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(f"Template function failed: {exc}") from exc

        if not isinstance(rendered, bytes):
            raise RenderError(f"Template function returned {type(rendered).__name__}, expected bytes")

        logger.debug("Rendered configuration for %d backends", len(endpoints),
                     extra={"backends": [str(e) for e in endpoints]})
        return rendered
