"""Reconciliation loop with signal handling and discovery-failure cooldown."""

from __future__ import annotations

import logging
import signal
import threading
import time
from types import FrameType

from .config import AppConfig
from .discovery import BackendDiscovery
from .discovery.dns_client import TaskDNSClient
from .discovery.service_client import ServiceInspectClient
from .exceptions import (
    ConfigError,
    DiscoveryError,
    InstallError,
    ProcessReloadError,
    ProcessStartError,
    RenderError,
)
from .proxy.change_detector import ChangeDetector
from .proxy.renderer import ConfigRenderer, JinjaTemplate
from .proxy.supervisor import ProcessSupervisor, ProxySupervisor, supervise

logger = logging.getLogger(__name__)


class Daemon:
    """Reconciliation loop: discover -> render -> compare/install -> supervise -> sleep."""

    def __init__(
        self,
        config: AppConfig,
        discovery: BackendDiscovery | None = None,
        renderer: ConfigRenderer | None = None,
        detector: ChangeDetector | None = None,
        supervisor: ProcessSupervisor | None = None,
    ):
        self._config = config
        self._discovery = discovery or self._build_discovery(config)
        self._renderer = renderer or ConfigRenderer(JinjaTemplate(config.proxy.template_path))
        self._detector = detector or ChangeDetector(config.proxy.config_path)
        self._supervisor = supervisor or ProxySupervisor(config.proxy)
        self._stop = threading.Event()

    @staticmethod
    def _build_discovery(config: AppConfig) -> BackendDiscovery:
        """Instantiate the discovery strategy selected in the config.

        load_config() already rejects both/neither; the check is repeated here
        for AppConfig objects built in code without going through validate().
        """
        discovery = config.discovery
        if discovery.api_enabled and discovery.dns_enabled:
            raise ConfigError("Both controller API and DNS task discovery configured")
        if discovery.api_enabled:
            return ServiceInspectClient(discovery.api)
        if discovery.dns_enabled:
            return TaskDNSClient(discovery.dns)
        raise ConfigError("No service discovery configured")

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Ask the loop to finish after the current tick."""
        self._stop.set()

    def preview(self) -> bytes:
        """Discover and render once without installing or touching the proxy.

        Raises DiscoveryError or RenderError instead of absorbing them.
        """
        raw = self._discovery.discover()
        return self._renderer.render(self._discovery.build_endpoints(raw))

    def run_once(self) -> bool:
        """Execute a single tick. Returns False if discovery failed."""
        return self._tick()

    def run(self) -> None:
        """Run ticks until stopped or a fatal error occurs."""
        self._install_signal_handlers()
        logger.info(
            "Daemon started, polling every %ss (cooldown %ss after discovery failures)",
            self._config.polling.interval_seconds, self._config.polling.error_cooldown_seconds,
        )

        while not self._stop.is_set():
            try:
                ok = self._tick()
            except (InstallError, ProcessStartError):
                self._stop.set()
                raise
            except Exception:
                logger.exception("Tick failed unexpectedly")
                ok = False

            if ok:
                delay = self._config.polling.interval_seconds
            else:
                delay = self._config.polling.error_cooldown_seconds
            logger.debug("Sleeping %ss before next tick", delay)
            self._stop.wait(delay)

        logger.info("Daemon stopped")

    def _tick(self) -> bool:
        start = time.monotonic()

        try:
            raw = self._discovery.discover()
        except DiscoveryError as exc:
            logger.warning("Discovery failed: %s", exc)
            return False

        endpoints = self._discovery.build_endpoints(raw)

        try:
            rendered = self._renderer.render(endpoints)
        except RenderError as exc:
            # Keep the installed config; the proxy is still supervised below
            logger.error("Rendering failed, configuration left untouched: %s", exc)
            changed = False
        else:
            changed = self._detector.detect_and_install(rendered)

        try:
            supervise(self._supervisor, changed)
        except ProcessReloadError as exc:
            logger.error("Proxy reload failed: %s", exc, extra={"command": exc.command})

        elapsed = time.monotonic() - start
        logger.info(
            "Tick complete", extra={"elapsed_seconds": round(elapsed, 2), "backends": [str(e) for e in endpoints]},
        )
        return True

    def _install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

    def _handle_shutdown(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down", sig_name)
        self._stop.set()
