"""Where the GitHub token comes from."""

from __future__ import annotations

import os
from typing import Protocol

_ENV_KEYS = ("GITHUB_TOKEN", "GH_TOKEN")


class SecretStore(Protocol):
    def get_credential(self) -> str | None: ...

    def set_credential(self, value: str) -> bool: ...

    def clear_credential(self) -> bool: ...


class MemorySecretStore:
    def __init__(self, credential: str | None = None) -> None:
        self._credential = credential or None

    def get_credential(self) -> str | None:
        return self._credential

    def set_credential(self, value: str) -> bool:
        if not value:
            return False
        self._credential = value
        return True

    def clear_credential(self) -> bool:
        self._credential = None
        return True


class EnvSecretStore:
    """Reads ``GITHUB_TOKEN`` then ``GH_TOKEN``.

    :meth:`set_credential` installs an in-process override that wins over the
    environment; :meth:`clear_credential` also hides the environment value
    until a new credential is set.
    """

    def __init__(self) -> None:
        self._override: str | None = None
        self._cleared = False

    def get_credential(self) -> str | None:
        if self._override:
            return self._override
        if self._cleared:
            return None
        for key in _ENV_KEYS:
            value = os.environ.get(key, "").strip()
            if value:
                return value
        return None

    def set_credential(self, value: str) -> bool:
        if not value:
            return False
        self._override = value
        self._cleared = False
        return True

    def clear_credential(self) -> bool:
        self._override = None
        self._cleared = True
        return True
