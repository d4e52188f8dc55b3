"""
Field indices: which owners refer to which dependencies by name.

An index is maintained per owner kind and per field path (e.g. Trunks by
``spec.resource.portRef``). It answers one question only: which objects
of the owner kind currently name the given object in that field.
The references are namespace-local: an owner can only name the dependencies
in its own namespace.

The indices are maintained by the watch-cache of the cluster client
(by :class:`korc.testing.FakeCluster` in tests) on every change of the owners.
For the reconciliation engine, they are read-only.
"""
from collections.abc import Iterable, Iterator

from korc._cogs.structs import bodies, dicts


class FieldIndex:
    """
    A forward & reverse index of references from owners to dependencies.

    The forward index maps the referenced object's key to the owners' keys.
    The lookups are O(1), as Python's dict description promises.

    The reverse index maps the owner's key to the referenced keys, thus reducing
    the updates/deletions from O(K) to O(k), where "K" is the number of all
    referenced keys, "k" is the number of references per owner.
    """
    __items: dict[bodies.ObjectKey, dict[bodies.ObjectKey, None]]  # an ordered set of owners
    __reverse: dict[bodies.ObjectKey, set[bodies.ObjectKey]]

    def __init__(self, owner_kind: str, field: dicts.FieldSpec) -> None:
        super().__init__()
        self.owner_kind = owner_kind
        self.field = dicts.parse_field(field)
        self.__items = {}
        self.__reverse = {}

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.owner_kind}:{".".join(self.field)} {self.__items!r}>'

    def __bool__(self) -> bool:
        return bool(self.__items)

    def __len__(self) -> int:
        return len(self.__items)

    def __iter__(self) -> Iterator[bodies.ObjectKey]:
        return iter(self.__items)

    def __contains__(self, item: object) -> bool:
        return item in self.__items

    def lookup(self, namespace: str | None, name: str) -> list[bodies.ObjectKey]:
        """ The keys of all owners that name the given object, in the indexing order. """
        return list(self.__items.get(bodies.ObjectKey(namespace=namespace, name=name), {}))

    def discard(self, owner: bodies.ObjectKey) -> None:
        # Assume that the reverse/forward indices are consistent. If not, fix it, not "fall back".
        for key in self.__reverse.pop(owner, set()):
            owners = self.__items[key]
            owners.pop(owner, None)
            if not owners:
                del self.__items[key]

    def replace(self, owner: bodies.ObjectKey, names: Iterable[str]) -> None:
        """ Re-index the owner with its current references; the stale ones are forgotten. """
        keys = {bodies.ObjectKey(namespace=owner.namespace, name=name) for name in names if name}
        for stale_key in self.__reverse.get(owner, set()) - keys:
            owners = self.__items[stale_key]
            owners.pop(owner, None)
            if not owners:
                del self.__items[stale_key]
        for key in keys:
            self.__items.setdefault(key, {})[owner] = None
        if keys:
            self.__reverse[owner] = keys
        else:
            self.__reverse.pop(owner, None)
