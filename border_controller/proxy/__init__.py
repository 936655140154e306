"""Proxy side of a tick: render, compare/install, supervise."""

from .change_detector import ChangeDetector, fingerprint
from .renderer import ConfigRenderer, JinjaTemplate
from .supervisor import Action, ProcessSupervisor, ProxySupervisor, decide, supervise

__all__ = [
    "Action",
    "ChangeDetector",
    "ConfigRenderer",
    "JinjaTemplate",
    "ProcessSupervisor",
    "ProxySupervisor",
    "decide",
    "fingerprint",
    "supervise",
]
