"""Normalized pull-request event structures shared by every adapter.

Adapters translate provider payloads into these frozen msgspec structs. They
are the only contract between the two queue stages and the downstream sink,
and they are never mutated once built.
"""

from __future__ import annotations

import datetime as dt  # noqa: TC003 - msgspec resolves annotations at runtime
import enum

import msgspec


class Platform(enum.StrEnum):
    """SCM providers known to the router."""

    GITHUB = "github"
    BITBUCKET = "bitbucket"
    UNKNOWN = "unknown"


class FileStatus(enum.StrEnum):
    """Change kinds a normalized file can carry."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"


PULL_REQUEST_EVENT_PREFIX = "pull_request."


def pull_request_event_type(action: str) -> str:
    """Return the unified event type for a pull-request ``action``."""
    return f"{PULL_REQUEST_EVENT_PREFIX}{action}"


class NormalizedPR(msgspec.Struct, kw_only=True, frozen=True):
    """Pull request metadata in provider-neutral form.

    ``number`` together with the repository owner and name identifies a pull
    request across the system.
    """

    number: int
    title: str = ""
    description: str = ""
    author: str = ""
    source_branch: str = ""
    target_branch: str = ""
    state: str = ""
    url: str = ""


class NormalizedRepository(msgspec.Struct, kw_only=True, frozen=True):
    """Repository identity in provider-neutral form."""

    name: str = ""
    full_name: str = ""
    owner: str = ""
    clone_url: str = ""
    html_url: str = ""


class NormalizedFile(msgspec.Struct, kw_only=True, frozen=True):
    """A file changed by a pull request.

    Attributes
    ----------
    filename
        Path of the file after the change.
    status
        One of the four :class:`FileStatus` kinds.
    additions, deletions, changes
        Line counts; ``changes`` is always ``additions + deletions``.
    previous_filename
        Path before a rename. Present if and only if ``status`` is
        ``renamed``.

    """

    filename: str
    status: FileStatus
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    previous_filename: str | None = None

    def __post_init__(self) -> None:
        """Reject files whose rename or line-count fields disagree."""
        if self.changes != self.additions + self.deletions:
            msg = "changes must equal additions + deletions"
            raise ValueError(msg)
        renamed = self.status == FileStatus.RENAMED
        if renamed != bool(self.previous_filename):
            msg = "previous_filename must be set exactly when status is renamed"
            raise ValueError(msg)

    @classmethod
    def build(  # noqa: PLR0913 - mirrors the provider diff fields
        cls,
        *,
        filename: str,
        status: FileStatus,
        additions: int,
        deletions: int,
        previous_filename: str | None = None,
    ) -> NormalizedFile:
        """Build a file, repairing provider data that breaks the invariants.

        A rename without a previous path is reported as ``modified``; a
        previous path on any other status is discarded. ``changes`` is derived
        from the additions and deletions.
        """
        if status == FileStatus.RENAMED and not previous_filename:
            status = FileStatus.MODIFIED
        return cls(
            filename=filename,
            status=status,
            additions=additions,
            deletions=deletions,
            changes=additions + deletions,
            previous_filename=(
                previous_filename if status == FileStatus.RENAMED else None
            ),
        )


class NormalizedEvent(msgspec.Struct, kw_only=True, frozen=True):
    """The unified pull-request event delivered to the sink.

    ``event_type`` always reads ``pull_request.<action>``. ``files`` is empty
    unless the adapter enriched the event with the changed-file list.
    ``raw_payload`` keeps the provider bytes untouched for auditing.
    """

    platform: Platform
    event_type: str
    action: str
    pr: NormalizedPR
    repository: NormalizedRepository
    files: tuple[NormalizedFile, ...] = ()
    raw_payload: bytes = b""
    received_at: dt.datetime

    def __post_init__(self) -> None:
        """Enforce the known-platform and event-type conventions."""
        if self.platform == Platform.UNKNOWN:
            msg = "normalized events require a known platform"
            raise ValueError(msg)
        if self.event_type != pull_request_event_type(self.action):
            msg = (
                f"event_type {self.event_type!r} does not match "
                f"action {self.action!r}"
            )
            raise ValueError(msg)


class RawWebhookMessage(msgspec.Struct, kw_only=True, frozen=True):
    """A verified webhook as queued by the gateway.

    ``event_type`` is the provider's own event name (for example
    ``pull_request`` or ``pullrequest:created``) and ``payload`` is the
    request body exactly as received.
    """

    platform: Platform
    event_type: str
    payload: bytes
