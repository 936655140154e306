"""Data models for discovered backends and the controller's inspect envelope."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class BackendEndpoint:
    """One reachable instance of the proxied service."""

    host: str
    port: str

    # Capitalised aliases for templates that refer to .Node and .Port
    @property
    def Node(self) -> str:  # noqa: N802
        return self.host

    @property
    def Port(self) -> str:  # noqa: N802
        return self.port

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class ServiceInspection:
    """Response envelope of ``GET /service/inspect/{service}``.

    On the wire the fields are named ``Acode``, ``Astring`` and ``Aslice``.
    """

    code: int
    message: str = ""
    backends: list[str] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.code >= 500

    @classmethod
    def from_payload(cls, payload: Any) -> ServiceInspection:
        """Map a decoded JSON body onto the envelope. Raises ValueError if malformed."""
        if not isinstance(payload, dict):
            raise ValueError("inspect response must be a JSON object")

        code = payload.get("Acode", 0)
        if isinstance(code, bool) or not isinstance(code, int):
            raise ValueError(f"Acode must be an integer, got {code!r}")

        backends = payload.get("Aslice") or []
        if not isinstance(backends, list) or not all(isinstance(b, str) for b in backends):
            raise ValueError("Aslice must be a list of strings")

        return cls(code=code, message=str(payload.get("Astring") or ""), backends=list(backends))


def service_endpoints(raw: list[str], dns_domain: str) -> list[BackendEndpoint]:
    """Turn controller identifiers ("<node> <port>") into ordered endpoints.

    Sorting happens on the raw identifiers; the domain suffix is appended
    afterwards. Duplicates are kept.
    """
    endpoints: list[BackendEndpoint] = []
    for identifier in sorted(raw):
        parts = identifier.split(None, 1)
        if len(parts) != 2:
            logger.warning("Skipping malformed backend identifier: %r", identifier)
            continue
        node, port = parts[0], parts[1].strip()
        endpoints.append(BackendEndpoint(host=f"{node}.{dns_domain}", port=port))
    return endpoints


def dns_endpoints(addresses: list[str], port: str) -> list[BackendEndpoint]:
    """Pair resolved addresses, sorted, with the shared service port."""
    return [BackendEndpoint(host=address, port=port) for address in sorted(addresses)]
