"""
All the functions to manipulate the object finalization and deletion.

Finalizers block the actual deletion of an object from the cluster storage
until they are all removed. Each controller puts its own finalizer on its own
objects (to release the remote resource first), and on the dependencies
it guards (to keep them while they are still referenced).

As the finalizers are a list, and lists are replaced as a whole by
the merge-patches, the patch always carries the full desired list.
"""
from collections.abc import Collection

from korc._cogs.structs import bodies, patches


def get_finalizers(body: bodies.RawBody) -> list[str]:
    return list(body.get('metadata', {}).get('finalizers', None) or [])


def is_deletion_ongoing(body: bodies.RawBody) -> bool:
    return body.get('metadata', {}).get('deletionTimestamp', None) is not None


def is_deletion_blocked(body: bodies.RawBody, finalizer: str) -> bool:
    return finalizer in get_finalizers(body)


def get_foreign_finalizers(body: bodies.RawBody, known: Collection[str]) -> list[str]:
    """ Finalizers put by someone else: other controllers, users, the cluster itself. """
    return [finalizer for finalizer in get_finalizers(body) if finalizer not in known]


def block_deletion(
        *,
        body: bodies.RawBody,
        patch: patches.Patch,
        finalizer: str,
) -> bool:
    """ Add the finalizer to the patch, if not yet on the object. Return if added. """
    current = patch.metadata.get('finalizers', get_finalizers(body))
    if finalizer in current:
        return False
    patch.metadata['finalizers'] = current + [finalizer]
    return True


def allow_deletion(
        *,
        body: bodies.RawBody,
        patch: patches.Patch,
        finalizers: Collection[str],
) -> bool:
    """ Remove the finalizers from the patch, if on the object. Return if removed. """
    current = patch.metadata.get('finalizers', get_finalizers(body))
    remaining = [finalizer for finalizer in current if finalizer not in finalizers]
    if remaining == current:
        return False
    patch.metadata['finalizers'] = remaining
    return True
