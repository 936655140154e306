"""Proxy process control: liveness, start and reload."""

from __future__ import annotations

import enum
import logging
import subprocess
from typing import Protocol, runtime_checkable

import psutil

from ..config import ProxyConfig
from ..exceptions import ProcessReloadError, ProcessStartError

logger = logging.getLogger(__name__)


class Action(enum.Enum):
    NONE = "none"
    START = "start"
    RELOAD = "reload"


@runtime_checkable
class ProcessSupervisor(Protocol):
    """Capability the reconciliation loop needs from the proxy process."""

    def is_running(self) -> bool:
        ...

    def start(self) -> None:
        ...

    def reload(self) -> None:
        ...


def decide(changed: bool, running: bool) -> Action:
    """Map (config changed, proxy running) to the action to take.

    A stopped proxy is always started, whether or not the config changed.
    """
    if not running:
        return Action.START
    if changed:
        return Action.RELOAD
    return Action.NONE


def supervise(supervisor: ProcessSupervisor, changed: bool) -> Action:
    """Query liveness, decide and execute. Returns the action taken."""
    running = supervisor.is_running()
    action = decide(changed, running)
    logger.info(
        "Proxy running=%s, config changed=%s -> %s", running, changed, action.value,
        extra={"action": action.value},
    )

    if action is Action.START:
        supervisor.start()
    elif action is Action.RELOAD:
        supervisor.reload()
    return action


class ProxySupervisor:
    """Controls an nginx-style proxy through its command line."""

    def __init__(self, config: ProxyConfig):
        self._process_name = config.process_name
        self._start_command = list(config.start_command)
        self._reload_command = list(config.reload_command)
        self._reload_timeout = config.reload_timeout_seconds
        self._child: subprocess.Popen | None = None

    def is_running(self) -> bool:
        self._reap_child()
        try:
            for proc in psutil.process_iter(["name", "status"]):
                name = proc.info.get("name") or ""
                if self._process_name not in name:
                    continue
                if proc.info.get("status") == psutil.STATUS_ZOMBIE:
                    continue
                return True
        except (psutil.Error, OSError) as exc:
            logger.warning("Process inspection failed, assuming %s is not running: %s", self._process_name, exc)
            return False
        return False

    def start(self) -> None:
        logger.info("Starting proxy", extra={"command": self._start_command})
        try:
            self._child = subprocess.Popen(self._start_command)
        except OSError as exc:
            raise ProcessStartError(f"Cannot start proxy: {exc}", command=self._start_command) from exc
        logger.info("Proxy started with pid %d", self._child.pid)

    def reload(self) -> None:
        logger.info("Reloading proxy", extra={"command": self._reload_command})
        try:
            subprocess.run(
                self._reload_command,
                check=True,
                timeout=self._reload_timeout,
                capture_output=True,
            )
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode(errors="replace").strip()
            raise ProcessReloadError(
                f"Reload exited with status {exc.returncode}: {stderr}", command=self._reload_command,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ProcessReloadError(
                f"Reload did not finish within {self._reload_timeout}s", command=self._reload_command,
            ) from exc
        except OSError as exc:
            raise ProcessReloadError(f"Cannot run reload command: {exc}", command=self._reload_command) from exc

    def _reap_child(self) -> None:
        """Collect the exit status of a proxy we started that has since died."""
        if self._child is None:
            return
        returncode = self._child.poll()
        if returncode is not None:
            logger.warning("Proxy process %d exited with status %d", self._child.pid, returncode)
            self._child = None
