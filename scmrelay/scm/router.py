"""Identify the provider behind a webhook and build its adapter.

Each provider contributes one :class:`PlatformSignals` row. Detection walks the
table in order and picks the first provider whose identifying header is
present, so the gateway and the consumers never branch on header names.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from scmrelay.events.models import Platform

from .auth import StaticTokenAuthProvider
from .bitbucket import BitbucketAdapter
from .config import BITBUCKET_TOKEN_ENV, GITHUB_TOKEN_ENV, AdapterConfig
from .errors import ConfigurationError
from .github import GitHubAdapter

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import httpx

    from .protocol import SCMAdapter


@dc.dataclass(frozen=True, slots=True)
class PlatformSignals:
    """Headers and event names that identify one provider's webhooks."""

    platform: Platform
    event_header: str
    signature_header: str
    pull_request_events: frozenset[str] = frozenset()
    pull_request_prefix: str | None = None

    def is_pull_request_event(self, event_type: str) -> bool:
        """Return whether ``event_type`` concerns a pull request."""
        if event_type in self.pull_request_events:
            return True
        prefix = self.pull_request_prefix
        return prefix is not None and event_type.startswith(prefix)


PLATFORM_SIGNALS: tuple[PlatformSignals, ...] = (
    PlatformSignals(
        platform=Platform.GITHUB,
        event_header="X-GitHub-Event",
        signature_header="X-Hub-Signature-256",
        pull_request_events=frozenset({"pull_request"}),
    ),
    PlatformSignals(
        platform=Platform.BITBUCKET,
        event_header="X-Event-Key",
        signature_header="X-Hub-Signature",
        pull_request_prefix="pullrequest:",
    ),
)

_SIGNALS_BY_PLATFORM = {signals.platform: signals for signals in PLATFORM_SIGNALS}


def _header(headers: cabc.Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted and value.strip():
            return value.strip()
    return None


def detect_platform(headers: cabc.Mapping[str, str]) -> Platform:
    """Return the provider whose identifying header is present.

    Header names are matched case-insensitively. Returns
    :attr:`Platform.UNKNOWN` when no provider matches; never raises.
    """
    for signals in PLATFORM_SIGNALS:
        if _header(headers, signals.event_header) is not None:
            return signals.platform
    return Platform.UNKNOWN


def event_type_for(platform: Platform, headers: cabc.Mapping[str, str]) -> str:
    """Return the provider's raw event name, or ``""`` when absent."""
    signals = _SIGNALS_BY_PLATFORM.get(platform)
    if signals is None:
        return ""
    return _header(headers, signals.event_header) or ""


def signature_for(platform: Platform, headers: cabc.Mapping[str, str]) -> str | None:
    """Return the signature header value used by ``platform``.

    For an unknown platform the first known signature header present is
    returned, so unidentified requests are still authenticated before they
    are dropped.
    """
    signals = _SIGNALS_BY_PLATFORM.get(platform)
    if signals is not None:
        return _header(headers, signals.signature_header)
    for candidate in PLATFORM_SIGNALS:
        value = _header(headers, candidate.signature_header)
        if value is not None:
            return value
    return None


def is_pull_request_event(platform: Platform, event_type: str) -> bool:
    """Return whether the webhook should enter the pipeline."""
    signals = _SIGNALS_BY_PLATFORM.get(platform)
    return signals is not None and signals.is_pull_request_event(event_type)


class PlatformRouter:
    """Build adapters from static configuration.

    Parameters
    ----------
    config
        Provider tokens, endpoints and timeouts, loaded once at startup.
    http_client
        Optional shared client handed to every adapter. Adapters never close
        a client they did not create.

    """

    def __init__(
        self,
        config: AdapterConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Keep the configuration; no network access happens here."""
        self._config = config
        self._http_client = http_client

    @property
    def config(self) -> AdapterConfig:
        """Return the adapter configuration."""
        return self._config

    def new_adapter(self, platform: Platform | str) -> SCMAdapter:
        """Return a fresh adapter for ``platform``.

        Raises
        ------
        ConfigurationError
            If the platform is unknown or its token is not configured.

        """
        config = self._config
        if platform == Platform.GITHUB:
            return GitHubAdapter(
                base_url=config.github_api_url,
                auth=StaticTokenAuthProvider(
                    config.github_token, env_var=GITHUB_TOKEN_ENV
                ),
                timeout_s=config.timeout_s,
                user_agent=config.user_agent,
                http_client=self._http_client,
            )
        if platform == Platform.BITBUCKET:
            return BitbucketAdapter(
                base_url=config.bitbucket_api_url,
                auth=StaticTokenAuthProvider(
                    config.bitbucket_token, env_var=BITBUCKET_TOKEN_ENV
                ),
                timeout_s=config.timeout_s,
                user_agent=config.user_agent,
                http_client=self._http_client,
            )
        raise ConfigurationError.unsupported_platform(str(platform))
