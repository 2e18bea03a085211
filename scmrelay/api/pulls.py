"""Synchronous pull request lookups through the provider adapters.

``GET /platforms/{platform}/repositories/{owner}/{repo}/pulls/{number}``
returns a pull request together with its changed files, normalised exactly
as the pipeline would normalise them.
"""

from __future__ import annotations

import typing as typ

import falcon
import msgspec

from scmrelay.events.models import Platform

from .errors import MalformedRequestError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from scmrelay.scm.router import PlatformRouter

__all__ = ["PULLS_ROUTE", "PullRequestResource"]

PULLS_ROUTE = "/platforms/{platform}/repositories/{owner}/{repo}/pulls/{number:int}"


def _parse_platform(value: str) -> Platform:
    try:
        platform = Platform(value.lower())
    except ValueError:
        platform = Platform.UNKNOWN
    if platform == Platform.UNKNOWN:
        msg = f"unsupported platform {value!r}"
        raise MalformedRequestError(msg, field="platform")
    return platform


class PullRequestResource:
    """Fetch one pull request and its files from the provider API."""

    def __init__(self, router: PlatformRouter) -> None:
        """Configure the resource with the adapter router."""
        self._router = router

    async def on_get(  # noqa: PLR0913 - Falcon passes each URI field
        self,
        _req: Request,
        resp: Response,
        *,
        platform: str,
        owner: str,
        repo: str,
        number: int,
    ) -> None:
        """Handle the lookup.

        Raises
        ------
        MalformedRequestError
            For an unknown platform or a non-positive number.
        ConfigurationError
            If the platform has no credentials configured.
        UpstreamAPIError
            If the provider API call fails.

        """
        parsed = _parse_platform(platform)
        if number < 1:
            msg = "pull request number must be positive"
            raise MalformedRequestError(msg, field="number")

        adapter = self._router.new_adapter(parsed)
        try:
            pull_request = await adapter.get_pr_details(owner, repo, number)
            files = await adapter.get_pr_files(owner, repo, number)
        finally:
            await adapter.aclose()

        resp.media = {
            "pull_request": msgspec.to_builtins(pull_request),
            "files": msgspec.to_builtins(files),
        }
        resp.status = falcon.HTTP_200
