"""Reconciliation sidecar keeping an nginx proxy in sync with discovered backends."""

__version__ = "1.0.0"
