"""
The contract of the cluster API, as used by the reconciliation engine.

The actual client, the watch-streams, the caches and the work-queues are
the surrounding infrastructure: they are not implemented here. The engine
only needs typed reads, merge-patches under a field manager, and lookups
in the field indices that the watch-cache maintains.

An in-memory implementation for tests is in :mod:`korc.testing`.
"""
from collections.abc import Callable, Iterable
from typing import Protocol

from korc._cogs.structs import bodies, dicts, patches

# Extracts the referenced names from an owner; registered per (owner kind, field).
IndexExtractor = Callable[[bodies.RawBody], Iterable[str]]


class ClusterClient(Protocol):

    async def get(
            self,
            kind: str,
            key: bodies.ObjectKey,
    ) -> bodies.RawBody:
        """ Read the object fresh. Raise `APINotFoundError` if absent. """
        ...

    async def list_referrers(
            self,
            owner_kind: str,
            field: dicts.FieldSpec,
            key: bodies.ObjectKey,
    ) -> list[bodies.RawBody]:
        """ All objects of the owner kind whose field names the given object. """
        ...

    async def patch(
            self,
            kind: str,
            key: bodies.ObjectKey,
            patch: patches.Patch,
            *,
            field_manager: str,
            subresource: str | None = None,
    ) -> bodies.RawBody | None:
        """ Apply the merge-patch; return the patched object, or None if it is gone after it. """
        ...

    def register_index(
            self,
            owner_kind: str,
            field: dicts.FieldSpec,
            extractor: IndexExtractor,
    ) -> None:
        """ Start indexing the owners by the names their field refers to. """
        ...
