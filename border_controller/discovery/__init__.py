"""Backend discovery strategies and the Protocol they share."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import BackendEndpoint


@runtime_checkable
class BackendDiscovery(Protocol):
    """Protocol that every discovery strategy must satisfy."""

    def discover(self) -> list[str]:
        """Return the raw, unordered backend identifiers. Raises DiscoveryError."""
        ...

    def build_endpoints(self, raw: list[str]) -> list[BackendEndpoint]:
        """Sort raw identifiers and turn them into endpoints for rendering."""
        ...
