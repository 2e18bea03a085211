"""The contract every SCM provider adapter implements.

Supporting a new provider means writing a class that satisfies
:class:`SCMAdapter` and teaching the router to build it. The queue consumers
and the gateway never change.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from scmrelay.events.models import (
        NormalizedEvent,
        NormalizedFile,
        NormalizedPR,
        Platform,
    )


@typ.runtime_checkable
class SCMAdapter(typ.Protocol):
    """Provider-specific normalisation and API access."""

    @property
    def platform(self) -> Platform:
        """Return the platform this adapter handles."""
        ...

    async def get_pr_details(
        self, owner: str, repo: str, pr_number: int
    ) -> NormalizedPR:
        """Fetch pull request metadata from the provider API.

        Raises
        ------
        UpstreamAPIError
            On transport failures, non-2xx responses or malformed JSON.

        """
        ...

    async def get_pr_files(
        self, owner: str, repo: str, pr_number: int
    ) -> list[NormalizedFile]:
        """Fetch every changed file of a pull request, across all pages.

        Raises
        ------
        UpstreamAPIError
            On transport failures, non-2xx responses or malformed JSON.

        """
        ...

    async def normalize_event(self, event_type: str, payload: bytes) -> NormalizedEvent:
        """Convert a raw webhook into a :class:`NormalizedEvent`.

        File enrichment is best effort: when fetching the file list fails the
        event is still returned, with no files.

        Raises
        ------
        PayloadParseError
            If ``payload`` does not match the provider's webhook schema.

        """
        ...

    async def aclose(self) -> None:
        """Release HTTP resources owned by the adapter."""
        ...
