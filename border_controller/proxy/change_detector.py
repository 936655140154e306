"""Fingerprint comparison and atomic installation of the rendered configuration."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path

from ..exceptions import InstallError

logger = logging.getLogger(__name__)

CONFIG_FILE_MODE = 0o644


def fingerprint(data: bytes) -> str:
    """Hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


class ChangeDetector:
    """Compares freshly rendered bytes against the live config file and installs on change."""

    def __init__(self, config_path: str | Path):
        self._path = Path(config_path)

    @property
    def config_path(self) -> Path:
        return self._path

    def detect_and_install(self, new_bytes: bytes) -> bool:
        """Install ``new_bytes`` if it differs from the live file.

        Returns True when a new file was installed. Raises InstallError if
        the write fails.
        """
        new_fp = fingerprint(new_bytes)
        current_fp = fingerprint(self._read_current())
        logger.debug("Rendered fingerprint %s, installed fingerprint %s", new_fp, current_fp,
                     extra={"fingerprint": new_fp})

        if new_fp == current_fp:
            logger.info("Configuration unchanged, nothing to do", extra={"fingerprint": new_fp})
            return False

        logger.info("Configuration changed, installing %s", self._path,
                    extra={"fingerprint": new_fp, "config_path": str(self._path)})
        self._install(new_bytes)
        return True

    def _read_current(self) -> bytes:
        try:
            return self._path.read_bytes()
        except OSError as exc:
            logger.warning("Cannot read existing configuration %s: %s", self._path, exc)
            return b""

    def _install(self, data: bytes) -> None:
        """Write to a temp file beside the target, fsync, then rename over it."""
        directory = self._path.parent
        try:
            fd, temp_path = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=directory)
        except OSError as exc:
            raise InstallError(f"Cannot create temporary file in {directory}: {exc}", path=str(self._path)) from exc

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_path, CONFIG_FILE_MODE)
            os.replace(temp_path, self._path)
        except OSError as exc:
            try:
                os.unlink(temp_path)
            except OSError:
                logger.debug("Could not remove temporary file %s", temp_path, exc_info=True)
            raise InstallError(f"Cannot write configuration {self._path}: {exc}", path=str(self._path)) from exc
