"""GitHub adapter built on the REST v3 API."""

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

# Pull request webhook actions GitHub documents; anything else is "unknown".
_KNOWN_ACTIONS = frozenset(
    {
        "assigned",
        "auto_merge_disabled",
        "auto_merge_enabled",
        "closed",
        "converted_to_draft",
        "demilestoned",
        "dequeued",
        "edited",
        "enqueued",
        "labeled",
        "locked",
        "milestoned",
        "opened",
        "ready_for_review",
        "reopened",
        "review_request_removed",
        "review_requested",
        "synchronize",
        "unassigned",
        "unlabeled",
        "unlocked",
    }
)
_ENRICHABLE_ACTIONS = frozenset({"opened", "synchronize", "reopened"})

_FILE_STATUSES = {
    "added": FileStatus.ADDED,
    "removed": FileStatus.REMOVED,
    "modified": FileStatus.MODIFIED,
    "renamed": FileStatus.RENAMED,
}


class _User(msgspec.Struct, frozen=True):
    login: str = ""


class _Ref(msgspec.Struct, frozen=True):
    ref: str = ""


class _PullRequest(msgspec.Struct, frozen=True):
    number: int = 0
    title: str = ""
    body: str | None = None
    state: str = ""
    merged: bool = False
    merged_at: str | None = None
    html_url: str = ""
    user: _User | None = None
    head: _Ref | None = None
    base: _Ref | None = None


class _Repository(msgspec.Struct, frozen=True):
    name: str = ""
    full_name: str = ""
    html_url: str = ""
    clone_url: str = ""
    owner: _User | None = None


class _Webhook(msgspec.Struct, frozen=True):
    action: str = ""
    pull_request: _PullRequest = msgspec.field(default_factory=_PullRequest)
    repository: _Repository = msgspec.field(default_factory=_Repository)


class _File(msgspec.Struct, frozen=True):
    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    previous_filename: str | None = None


def map_action(action: str) -> str:
    """Return the unified action for a GitHub pull request ``action``."""
    return action if action in _KNOWN_ACTIONS else "unknown"


def map_file_status(status: str) -> FileStatus:
    """Map a GitHub file status onto :class:`FileStatus`.

    ``copied``, ``changed`` and ``unchanged`` have no unified equivalent and
    become ``modified``.
    """
    return _FILE_STATUSES.get(status.lower(), FileStatus.MODIFIED)


def _pr_state(pr: _PullRequest) -> str:
    state = pr.state.lower()
    if state == "closed" and (pr.merged or pr.merged_at):
        return "merged"
    return state


def _normalize_pr(pr: _PullRequest) -> NormalizedPR:
    return NormalizedPR(
        number=pr.number,
        title=pr.title,
        description=pr.body or "",
        author=pr.user.login if pr.user else "",
        source_branch=pr.head.ref if pr.head else "",
        target_branch=pr.base.ref if pr.base else "",
        state=_pr_state(pr),
        url=pr.html_url,
    )


def _normalize_file(item: _File) -> NormalizedFile:
    return NormalizedFile.build(
        filename=item.filename,
        status=map_file_status(item.status),
        additions=item.additions,
        deletions=item.deletions,
        previous_filename=item.previous_filename,
    )


class GitHubAdapter(RestAdapter):
    """:class:`~scmrelay.scm.protocol.SCMAdapter` for github.com and GHES."""

    platform_name: typ.ClassVar[Platform] = Platform.GITHUB
    extra_headers: typ.ClassVar[dict[str, str]] = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }

    async def get_pr_details(
        self, owner: str, repo: str, pr_number: int
    ) -> NormalizedPR:
        """Fetch ``GET /repos/{owner}/{repo}/pulls/{number}``."""
        url = self._url(f"/repos/{owner}/{repo}/pulls/{pr_number}")
        pr, _ = await self._get(url, _PullRequest, owner=owner, repo=repo)
        return _normalize_pr(pr)

    async def get_pr_files(
        self, owner: str, repo: str, pr_number: int
    ) -> list[NormalizedFile]:
        """Fetch every page of ``GET /repos/{owner}/{repo}/pulls/{number}/files``.

        Pages are followed through the ``Link: rel="next"`` header.
        """
        url: str | None = self._url(f"/repos/{owner}/{repo}/pulls/{pr_number}/files")
        params: dict[str, str | int] | None = {"per_page": 100}
        files: list[NormalizedFile] = []
        for _ in range(MAX_PAGES):
            if url is None:
                return files
            page, response = await self._get(
                url, list[_File], owner=owner, repo=repo, params=params
            )
            files.extend(_normalize_file(item) for item in page)
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string.
            params = None
        if url is not None:
            log_warning(
                logger,
                "Stopped listing files for %s/%s#%s after %s pages",
                owner,
                repo,
                pr_number,
                MAX_PAGES,
            )
        return files

    async def normalize_event(self, event_type: str, payload: bytes) -> NormalizedEvent:
        """Normalise a ``pull_request`` webhook delivery."""
        webhook = decode_webhook(self.platform, payload, _Webhook)
        action = map_action(webhook.action)
        pr = _normalize_pr(webhook.pull_request)
        repository = webhook.repository
        owner = repository.owner.login if repository.owner else ""

        files: tuple[NormalizedFile, ...] = ()
        if pr.number != 0 and action in _ENRICHABLE_ACTIONS:
            log_info(
                logger,
                "Fetching files for PR #%s in %s (%s)",
                pr.number,
                repository.full_name,
                event_type,
            )
            files = await self._enrich(owner, repository.name, pr.number)

        return NormalizedEvent(
            platform=Platform.GITHUB,
            event_type=pull_request_event_type(action),
            action=action,
            pr=pr,
            repository=NormalizedRepository(
                name=repository.name,
                full_name=repository.full_name,
                owner=owner,
                clone_url=repository.clone_url,
                html_url=repository.html_url,
            ),
            files=files,
            raw_payload=payload,
            received_at=utcnow(),
        )
