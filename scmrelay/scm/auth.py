"""Credential providers used by adapters to call provider APIs."""

from __future__ import annotations

import typing as typ

from .errors import ConfigurationError


@typ.runtime_checkable
class AuthProvider(typ.Protocol):
    """Issue bearer credentials scoped to a repository."""

    async def get_credential(self, owner: str, repo: str) -> str:
        """Return a bearer token usable for ``owner/repo``."""
        ...


class StaticTokenAuthProvider:
    """Hand out one pre-issued token for every repository.

    Parameters
    ----------
    token
        Bearer token, typically a personal or repository access token.
    env_var
        Name of the setting the token came from, used in error messages.

    Raises
    ------
    ConfigurationError
        If ``token`` is empty.

    """

    def __init__(self, token: str, *, env_var: str = "token") -> None:
        """Store the token after rejecting blank values."""
        if not token.strip():
            raise ConfigurationError.missing(env_var)
        self._token = token.strip()

    async def get_credential(self, owner: str, repo: str) -> str:
        """Return the configured token regardless of scope."""
        del owner, repo
        return self._token
