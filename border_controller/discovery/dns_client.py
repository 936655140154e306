"""DNS-based discovery of service tasks (e.g. ``tasks.<service>`` in Swarm)."""

from __future__ import annotations

import logging
import socket

from ..config import DnsDiscoveryConfig
from ..exceptions import ConfigError, DiscoveryError
from .models import BackendEndpoint, dns_endpoints

logger = logging.getLogger(__name__)


class TaskDNSClient:
    """Resolves the task DNS name to the addresses of all running tasks."""

    def __init__(self, config: DnsDiscoveryConfig):
        if not config.service_port:
            raise ConfigError("No service port given for DNS task discovery")
        self._config = config

    def discover(self) -> list[str]:
        name = self._config.task_dns_name
        try:
            infos = socket.getaddrinfo(name, None, proto=socket.IPPROTO_TCP)
        except OSError as exc:
            raise DiscoveryError(f"Cannot resolve {name}: {exc}") from exc

        addresses = [sockaddr[0] for _family, _type, _proto, _canon, sockaddr in infos]
        logger.info("Resolved %s to %d addresses", name, len(addresses), extra={"backends": addresses})
        return addresses

    def build_endpoints(self, raw: list[str]) -> list[BackendEndpoint]:
        return dns_endpoints(raw, self._config.service_port)
