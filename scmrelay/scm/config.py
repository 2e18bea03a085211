"""Static configuration for SCM adapters."""

from __future__ import annotations

import dataclasses as dc

from scmrelay.common.env import read_positive_float, read_str

GITHUB_TOKEN_ENV = "SCMRELAY_GITHUB_TOKEN"
BITBUCKET_TOKEN_ENV = "SCMRELAY_BITBUCKET_TOKEN"

_GITHUB_API_URL = "https://api.github.com"
_BITBUCKET_API_URL = "https://api.bitbucket.org/2.0"
_TIMEOUT_S = 20.0


@dc.dataclass(frozen=True, slots=True)
class AdapterConfig:
    """Credentials and endpoints for every supported provider.

    Attributes
    ----------
    github_token
        Bearer token for the GitHub REST API. Empty disables the adapter.
    github_api_url
        Base URL of the GitHub REST API.
    bitbucket_token
        Bearer token for the Bitbucket Cloud API. Empty disables the adapter.
    bitbucket_api_url
        Base URL of the Bitbucket Cloud 2.0 API.
    timeout_s
        Deadline applied to every provider API request.
    user_agent
        ``User-Agent`` header sent to providers.

    """

    github_token: str = ""
    github_api_url: str = _GITHUB_API_URL
    bitbucket_token: str = ""
    bitbucket_api_url: str = _BITBUCKET_API_URL
    timeout_s: float = _TIMEOUT_S
    user_agent: str = "scmrelay/0.1"

    @classmethod
    def from_env(cls) -> AdapterConfig:
        """Build configuration from ``SCMRELAY_*`` environment variables.

        Reads ``SCMRELAY_GITHUB_TOKEN``, ``SCMRELAY_GITHUB_API_URL``,
        ``SCMRELAY_BITBUCKET_TOKEN``, ``SCMRELAY_BITBUCKET_API_URL`` and
        ``SCMRELAY_SCM_TIMEOUT_S``. Missing tokens are not an error here; the
        router reports them when an adapter for that provider is requested.
        """
        return cls(
            github_token=read_str(GITHUB_TOKEN_ENV),
            github_api_url=read_str(
                "SCMRELAY_GITHUB_API_URL", _GITHUB_API_URL
            ).rstrip("/"),
            bitbucket_token=read_str(BITBUCKET_TOKEN_ENV),
            bitbucket_api_url=read_str(
                "SCMRELAY_BITBUCKET_API_URL", _BITBUCKET_API_URL
            ).rstrip("/"),
            timeout_s=read_positive_float("SCMRELAY_SCM_TIMEOUT_S", _TIMEOUT_S),
        )
