"""Errors raised by SCM adapters, the router and auth providers."""

from __future__ import annotations

from scmrelay.errors import ScmRelayError


class ConfigurationError(ScmRelayError):
    """Raised when a platform is unsupported or its credentials are missing."""

    @classmethod
    def unsupported_platform(cls, platform: str) -> ConfigurationError:
        """Return an error for a platform with no adapter."""
        return cls(f"unsupported SCM platform: {platform!r}")

    @classmethod
    def missing(cls, env_var: str) -> ConfigurationError:
        """Return an error for a required setting that is not configured."""
        return cls(f"{env_var} must be set")


class UpstreamAPIError(ScmRelayError):
    """Raised when a provider API call fails or returns unusable data."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and the HTTP status code, when known."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, platform: str, status_code: int, url: str) -> UpstreamAPIError:
        """Return an error for a non-2xx provider response."""
        return cls(
            f"{platform} API returned HTTP {status_code} for {url}",
            status_code=status_code,
        )

    @classmethod
    def transport(cls, platform: str, url: str, exc: Exception) -> UpstreamAPIError:
        """Return an error for a request that never produced a response."""
        return cls(f"{platform} API request to {url} failed: {exc}")

    @classmethod
    def malformed(cls, platform: str, url: str, detail: str) -> UpstreamAPIError:
        """Return an error for a response body that does not match its schema."""
        return cls(f"{platform} API returned malformed JSON for {url}: {detail}")


class PayloadParseError(ScmRelayError):
    """Raised when a webhook payload does not match the provider schema."""

    @classmethod
    def for_platform(cls, platform: str, detail: str) -> PayloadParseError:
        """Return an error describing why a payload could not be parsed."""
        return cls(f"{platform} webhook payload could not be parsed: {detail}")
