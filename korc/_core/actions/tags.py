"""
Convergence of the remote resources' tags.

The tags are a set: their order is irrelevant and duplicates are meaningless.
The remote APIs usually offer a single call to replace all the tags at once,
so the whole set is replaced when it differs, never tag by tag.
"""
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any

from korc._cogs.structs import bodies
from korc._core.actions import progress

logger = logging.getLogger(__name__)

TagsReplacer = Callable[[Sequence[str]], Awaitable[None]]
TagsReconciler = Callable[[bodies.RawBody, Any], Awaitable[progress.ReconcileStatus]]


def needs_update(desired: Iterable[str] | None, observed: Iterable[str] | None) -> bool:
    return set(desired or ()) != set(observed or ())


def reconcile_tags(
        desired: Iterable[str] | None,
        observed: Iterable[str] | None,
        replace: TagsReplacer,
) -> TagsReconciler:
    """
    Make a convergence step that replaces the remote tags if they differ.

    The step requests a refresh of the remote resource if it has changed
    anything, so that the following steps see the actual tags and revision.
    """
    desired_tags = sorted(set(desired or ()))
    observed_tags = list(observed or ())

    async def reconcile(body: bodies.RawBody, resource: Any) -> progress.ReconcileStatus:
        if not needs_update(desired_tags, observed_tags):
            return progress.OK
        logger.debug(f"Replacing the tags of {bodies.get_key(body)}: {observed_tags!r} -> {desired_tags!r}")
        await replace(desired_tags)
        return progress.refresh()

    return reconcile
