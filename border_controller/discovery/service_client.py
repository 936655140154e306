"""Controller API client for inspecting the ingress service's tasks."""

from __future__ import annotations

import logging

import requests

from ..config import ApiDiscoveryConfig
from ..exceptions import DiscoveryError
from .models import BackendEndpoint, ServiceInspection, service_endpoints

logger = logging.getLogger(__name__)


class ServiceInspectClient:
    """Asks the orchestrator controllers which nodes run the ingress service.

    Controllers are tried in configured order. The first one that answers
    200 with a well-formed envelope decides the outcome; transport errors,
    other status codes and undecodable bodies fall through to the next host.
    """

    def __init__(self, config: ApiDiscoveryConfig, session: requests.Session | None = None):
        self._config = config
        self._session = session or requests.Session()
        self._timeout = config.timeout_seconds

    def controller_url(self, host: str) -> str:
        cfg = self._config
        return f"http://{host}.{cfg.dns_domain}:{cfg.port}/service/inspect/{cfg.service_name}"

    def discover(self) -> list[str]:
        for host in self._config.controller_hosts:
            inspection = self._inspect(host)
            if inspection is None:
                continue

            if inspection.is_error:
                raise DiscoveryError(f"{inspection.code} {inspection.message}")

            logger.info(
                "Controller %s reported %d backends", host, len(inspection.backends),
                extra={"controller": host, "backends": inspection.backends},
            )
            return inspection.backends

        raise DiscoveryError("Cannot reach any controller host")

    def build_endpoints(self, raw: list[str]) -> list[BackendEndpoint]:
        return service_endpoints(raw, self._config.dns_domain)

    def _inspect(self, host: str) -> ServiceInspection | None:
        """Query one controller. Returns None when the next host should be tried."""
        url = self.controller_url(host)
        logger.debug("GET %s", url, extra={"controller": host})

        try:
            resp = self._session.get(url, params={"api_key": self._config.api_key}, timeout=self._timeout)
        except requests.RequestException as exc:
            # str(exc) embeds the request URL, query string and api_key included
            logger.warning(
                "Controller %s unreachable (%s)", host, type(exc).__name__, extra={"controller": host},
            )
            return None

        if resp.status_code != 200:
            logger.warning(
                "Controller %s answered HTTP %d", host, resp.status_code, extra={"controller": host},
            )
            return None

        try:
            return ServiceInspection.from_payload(resp.json())
        except ValueError as exc:
            logger.warning("Controller %s sent an unusable body: %s", host, exc, extra={"controller": host})
            return None
