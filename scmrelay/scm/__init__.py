"""SCM provider adapters, routing and credentials."""

from __future__ import annotations

from .auth import AuthProvider, StaticTokenAuthProvider
from .bitbucket import BitbucketAdapter
from .config import AdapterConfig
from .errors import ConfigurationError, PayloadParseError, UpstreamAPIError
from .github import GitHubAdapter
from .protocol import SCMAdapter
from .router import (
    PLATFORM_SIGNALS,
    PlatformRouter,
    PlatformSignals,
    detect_platform,
    event_type_for,
    is_pull_request_event,
    signature_for,
)

__all__ = [
    "PLATFORM_SIGNALS",
    "AdapterConfig",
    "AuthProvider",
    "BitbucketAdapter",
    "ConfigurationError",
    "GitHubAdapter",
    "PayloadParseError",
    "PlatformRouter",
    "PlatformSignals",
    "SCMAdapter",
    "StaticTokenAuthProvider",
    "UpstreamAPIError",
    "detect_platform",
    "event_type_for",
    "is_pull_request_event",
    "signature_for",
]
