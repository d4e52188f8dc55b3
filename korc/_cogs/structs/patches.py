"""
All the structures needed for patching the objects.

A patch is a JSON merge-patch (RFC 7386): a simple dictionary with the field
overrides, and ``None`` for field deletions. Lists are replaced as a whole,
so the finalizers and conditions are always patched in full.

Every patch is sent under a specific field manager (the field owner),
so that the fields owned by this controller and by the users never clash.
"""
from collections.abc import MutableMapping
from typing import Any


class Patch(dict[str, Any]):

    def __init__(self, __src: MutableMapping[str, Any] | None = None) -> None:
        super().__init__(__src or {})

    @property
    def metadata(self) -> dict[str, Any]:
        return self.setdefault('metadata', {})

    @property
    def status(self) -> dict[str, Any]:
        return self.setdefault('status', {})

    @property
    def has_status(self) -> bool:
        return bool(self.get('status'))

    @property
    def has_metadata(self) -> bool:
        return bool(self.get('metadata'))


def merge(
        target: MutableMapping[str, Any],
        patch: MutableMapping[str, Any],
) -> None:
    """
    Apply a merge-patch to a dict in place, as the cluster API does it.
    """
    for key, value in patch.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, MutableMapping) and isinstance(target.get(key), MutableMapping):
            merge(target[key], value)
        elif isinstance(value, MutableMapping):
            target[key] = {}
            merge(target[key], value)
        else:
            target[key] = value
