"""HTTP API: webhook gateway, pull request lookups and health probes."""

from __future__ import annotations

from .app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
