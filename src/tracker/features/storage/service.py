from __future__ import annotations

from typing import Protocol


class KeyValueStore(Protocol):
    """
    Browser-profile-scoped persistent storage (localStorage-like).
    Implementations never raise on read: unavailable storage reads as absent.
    """

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...


class InMemoryStorage:
    """
    Process-lifetime storage. Share one instance across engines to emulate
    several page loads in the same browser profile.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)
