"""Shared REST plumbing for provider adapters."""

from __future__ import annotations

import abc
import typing as typ

import httpx
import msgspec

from scmrelay.logging import get_logger, log_warning

from .errors import ConfigurationError, PayloadParseError, UpstreamAPIError

if typ.TYPE_CHECKING:
    from scmrelay.events.models import NormalizedFile, Platform

    from .auth import AuthProvider

logger = get_logger(__name__)

# GitHub stops listing pull request files after 3000 entries (30 pages of 100).
MAX_PAGES = 30


def decode_webhook[T](platform: Platform, payload: bytes, schema: type[T]) -> T:
    """Decode a webhook body against ``schema``.

    Raises
    ------
    PayloadParseError
        If ``payload`` is not JSON or does not match ``schema``.

    """
    try:
        return msgspec.json.decode(payload, type=schema)
    except msgspec.DecodeError as exc:
        raise PayloadParseError.for_platform(platform, str(exc)) from exc


class RestAdapter(abc.ABC):
    """Authenticated JSON ``GET`` requests against one provider API.

    Subclasses supply the platform, the base URL and any provider-specific
    headers. The HTTP client is closed by :meth:`aclose` only when the adapter
    created it.
    """

    platform_name: typ.ClassVar[Platform]
    extra_headers: typ.ClassVar[dict[str, str]] = {}

    def __init__(
        self,
        *,
        base_url: str,
        auth: AuthProvider,
        timeout_s: float,
        user_agent: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Store the endpoint and credentials, creating a client if needed."""
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._user_agent = user_agent
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)

    @property
    def platform(self) -> Platform:
        """Return the platform this adapter handles."""
        return self.platform_name

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def _get[T](
        self,
        url: str,
        response_type: type[T],
        *,
        owner: str,
        repo: str,
        params: dict[str, str | int] | None = None,
    ) -> tuple[T, httpx.Response]:
        """Fetch ``url`` and decode the body as ``response_type``.

        Returns the decoded body together with the response so callers can
        read pagination headers.
        """
        token = await self._auth.get_credential(owner, repo)
        headers = {
            "Accept": "application/json",
            **self.extra_headers,
            "Authorization": f"Bearer {token}",
            "User-Agent": self._user_agent,
        }
        try:
            response = await self._client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamAPIError.transport(self.platform, url, exc) from exc
        if not response.is_success:
            raise UpstreamAPIError.http_error(
                self.platform, response.status_code, url
            )
        try:
            body = msgspec.json.decode(response.content, type=response_type)
        except msgspec.DecodeError as exc:
            raise UpstreamAPIError.malformed(self.platform, url, str(exc)) from exc
        return body, response

    @abc.abstractmethod
    async def get_pr_files(
        self, owner: str, repo: str, pr_number: int
    ) -> list[NormalizedFile]:
        """Fetch the changed files of a pull request."""

    async def _enrich(
        self, owner: str, repo: str, pr_number: int
    ) -> tuple[NormalizedFile, ...]:
        """Return the changed files, or nothing when they cannot be fetched."""
        try:
            files = await self.get_pr_files(owner, repo, pr_number)
        except (UpstreamAPIError, ConfigurationError) as exc:
            log_warning(
                logger,
                "Could not fetch files for %s PR #%s in %s/%s: %s",
                self.platform,
                pr_number,
                owner,
                repo,
                exc,
            )
            return ()
        return tuple(files)
