"""Bitbucket Cloud adapter built on the 2.0 REST API.

Endpoints used:

- ``GET /repositories/{workspace}/{slug}/pullrequests/{id}``
- ``GET /repositories/{workspace}/{slug}/pullrequests/{id}/diffstat``

Bitbucket identifies webhook events only through the ``X-Event-Key`` header,
so the raw event type drives the action mapping here rather than the payload.
"""

from __future__ import annotations

import typing as typ

import msgspec

from scmrelay.common.time import utcnow
from scmrelay.events.models import (
    FileStatus,
    NormalizedEvent,
    NormalizedFile,
    NormalizedPR,
    NormalizedRepository,
    Platform,
    pull_request_event_type,
)
from scmrelay.logging import get_logger, log_info, log_warning

from .base import MAX_PAGES, RestAdapter, decode_webhook

logger = get_logger(__name__)

_EVENT_KEY_ACTIONS = {
    "pullrequest:created": "opened",
    "pullrequest:updated": "synchronize",
    "pullrequest:fulfilled": "closed",
    "pullrequest:rejected": "closed",
}
_ENRICHABLE_ACTIONS = frozenset({"opened", "synchronize"})

_FILE_STATUSES = {
    "added": FileStatus.ADDED,
    "removed": FileStatus.REMOVED,
    "modified": FileStatus.MODIFIED,
    "renamed": FileStatus.RENAMED,
}


class _Account(msgspec.Struct, frozen=True):
    nickname: str = ""
    display_name: str = ""


class _Branch(msgspec.Struct, frozen=True):
    name: str = ""


class _Endpoint(msgspec.Struct, frozen=True):
    branch: _Branch | None = None


class _Link(msgspec.Struct, frozen=True):
    href: str = ""


class _CloneLink(msgspec.Struct, frozen=True):
    href: str = ""
    name: str = ""


class _Links(msgspec.Struct, frozen=True):
    html: _Link | None = None
    clone: tuple[_CloneLink, ...] = ()


class _PullRequest(msgspec.Struct, frozen=True):
    id: int = 0
    title: str = ""
    description: str | None = None
    state: str = ""
    author: _Account | None = None
    source: _Endpoint | None = None
    destination: _Endpoint | None = None
    links: _Links | None = None


class _Repository(msgspec.Struct, frozen=True):
    name: str = ""
    full_name: str = ""
    links: _Links | None = None


class _Webhook(msgspec.Struct, frozen=True):
    pullrequest: _PullRequest = msgspec.field(default_factory=_PullRequest)
    repository: _Repository = msgspec.field(default_factory=_Repository)


class _DiffPath(msgspec.Struct, frozen=True):
    path: str = ""


class _DiffEntry(msgspec.Struct, frozen=True):
    status: str = "modified"
    lines_added: int = 0
    lines_removed: int = 0
    new: _DiffPath | None = None
    old: _DiffPath | None = None


class _DiffstatPage(msgspec.Struct, frozen=True):
    values: tuple[_DiffEntry, ...] = ()
    next: str | None = None


def map_event_key(event_key: str) -> str:
    """Return the unified action for a Bitbucket ``X-Event-Key`` value."""
    return _EVENT_KEY_ACTIONS.get(event_key, "unknown")


def map_file_status(status: str) -> FileStatus:
    """Map a diffstat status onto :class:`FileStatus`, defaulting to modified."""
    return _FILE_STATUSES.get(status.lower(), FileStatus.MODIFIED)


def split_full_name(full_name: str, fallback_name: str) -> tuple[str, str]:
    """Split ``workspace/slug`` into its parts.

    A name without a slash yields an empty workspace and ``fallback_name``.
    """
    workspace, sep, slug = full_name.partition("/")
    if not sep:
        return ("", fallback_name)
    return (workspace, slug)


def _author(account: _Account | None) -> str:
    if account is None:
        return ""
    return account.nickname or account.display_name


def _branch(endpoint: _Endpoint | None) -> str:
    if endpoint is None or endpoint.branch is None:
        return ""
    return endpoint.branch.name


def _html_url(links: _Links | None) -> str:
    if links is None or links.html is None:
        return ""
    return links.html.href


def _https_clone_url(links: _Links | None) -> str:
    if links is None:
        return ""
    return next((link.href for link in links.clone if link.name == "https"), "")


def _normalize_pr(pr: _PullRequest) -> NormalizedPR:
    return NormalizedPR(
        number=pr.id,
        title=pr.title,
        description=pr.description or "",
        author=_author(pr.author),
        source_branch=_branch(pr.source),
        target_branch=_branch(pr.destination),
        state=pr.state.lower(),
        url=_html_url(pr.links),
    )


def _normalize_entry(entry: _DiffEntry) -> NormalizedFile:
    status = map_file_status(entry.status)
    new_path = entry.new.path if entry.new else ""
    old_path = entry.old.path if entry.old else ""
    filename = old_path if status == FileStatus.REMOVED else new_path
    return NormalizedFile.build(
        filename=filename or new_path or old_path,
        status=status,
        additions=entry.lines_added,
        deletions=entry.lines_removed,
        previous_filename=old_path or None,
    )


class BitbucketAdapter(RestAdapter):
    """:class:`~scmrelay.scm.protocol.SCMAdapter` for Bitbucket Cloud."""

    platform_name: typ.ClassVar[Platform] = Platform.BITBUCKET

    async def get_pr_details(
        self, owner: str, repo: str, pr_number: int
    ) -> NormalizedPR:
        """Fetch a pull request from ``owner`` (the workspace) and ``repo``."""
        url = self._url(f"/repositories/{owner}/{repo}/pullrequests/{pr_number}")
        pr, _ = await self._get(url, _PullRequest, owner=owner, repo=repo)
        return _normalize_pr(pr)

    async def get_pr_files(
        self, owner: str, repo: str, pr_number: int
    ) -> list[NormalizedFile]:
        """Fetch the diffstat, following the ``next`` link of each page."""
        url: str | None = self._url(
            f"/repositories/{owner}/{repo}/pullrequests/{pr_number}/diffstat"
        )
        files: list[NormalizedFile] = []
        for _ in range(MAX_PAGES):
            if url is None:
                return files
            page, _ = await self._get(url, _DiffstatPage, owner=owner, repo=repo)
            files.extend(_normalize_entry(entry) for entry in page.values)
            url = page.next
        if url is not None:
            log_warning(
                logger,
                "Stopped reading diffstat for %s/%s#%s after %s pages",
                owner,
                repo,
                pr_number,
                MAX_PAGES,
            )
        return files

    async def normalize_event(self, event_type: str, payload: bytes) -> NormalizedEvent:
        """Normalise a ``pullrequest:*`` webhook delivery."""
        webhook = decode_webhook(self.platform, payload, _Webhook)
        action = map_event_key(event_type)
        pr = _normalize_pr(webhook.pullrequest)
        repository = webhook.repository
        owner, name = split_full_name(repository.full_name, repository.name)

        files: tuple[NormalizedFile, ...] = ()
        if pr.number != 0 and action in _ENRICHABLE_ACTIONS:
            log_info(
                logger,
                "Fetching files for PR #%s in %s (%s)",
                pr.number,
                repository.full_name,
                event_type,
            )
            files = await self._enrich(owner, name, pr.number)

        return NormalizedEvent(
            platform=Platform.BITBUCKET,
            event_type=pull_request_event_type(action),
            action=action,
            pr=pr,
            repository=NormalizedRepository(
                name=name,
                full_name=repository.full_name,
                owner=owner,
                clone_url=_https_clone_url(repository.links),
                html_url=_html_url(repository.links),
            ),
            files=files,
            raw_payload=payload,
            received_at=utcnow(),
        )
