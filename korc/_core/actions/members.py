"""
Convergence of the sets of sub-objects attached to a remote resource.

Some remote resources have members (e.g. subports of a trunk) that are
attached and detached with separate calls, but cannot be modified in place.
The desired members (from the spec and the resolved dependencies) are compared
with the observed members (from the remote) by a stable key, usually the remote
ID of the member. A member that is present on both sides but with different
parameters is detached and re-attached.

The detachments go before the attachments, so that a changed member is never
attached twice. Both operations are idempotent: when the pass is retried,
the diff is recalculated from the new observed state, and the already applied
changes are not repeated. A converged resource gives an empty diff.
"""
import dataclasses
from collections.abc import Awaitable, Callable, Hashable, Iterable, Sequence
from typing import Any, Generic, TypeVar

from korc._core.actions import progress

MemberT = TypeVar('MemberT')

MemberKeyFn = Callable[[MemberT], Hashable]
MemberParamsFn = Callable[[MemberT], Any]
MembersCallback = Callable[[Sequence[MemberT]], Awaitable[None]]


@dataclasses.dataclass(frozen=True)
class MembersDiff(Generic[MemberT]):
    add: Sequence[MemberT] = ()
    remove: Sequence[MemberT] = ()

    def __bool__(self) -> bool:
        return bool(self.add) or bool(self.remove)


def diff_members(
        desired: Iterable[MemberT],
        observed: Iterable[MemberT],
        *,
        key: MemberKeyFn[MemberT],
        params: MemberParamsFn[MemberT] | None = None,
) -> MembersDiff[MemberT]:
    """
    Calculate the members to attach and to detach.

    The added members keep the order of the desired ones; the removed members
    keep the order of the observed ones. If there are duplicate keys on the same
    side, the last one wins (the remote cannot have duplicates anyway).
    """
    params = params if params is not None else (lambda member: member)
    desired_by_key = {key(member): member for member in desired}
    observed_by_key = {key(member): member for member in observed}

    add: list[MemberT] = []
    remove: list[MemberT] = []
    for k, member in observed_by_key.items():
        if k not in desired_by_key or params(member) != params(desired_by_key[k]):
            remove.append(member)
    for k, member in desired_by_key.items():
        if k not in observed_by_key or params(member) != params(observed_by_key[k]):
            add.append(member)
    return MembersDiff(add=add, remove=remove)


async def converge_members(
        diff: MembersDiff[MemberT],
        *,
        add: MembersCallback[MemberT],
        remove: MembersCallback[MemberT],
) -> progress.ReconcileStatus:
    """
    Apply the diff to the remote: removals first, then additions.

    If anything was changed, the remote resource is requested to be re-fetched.
    The errors are propagated as is; the caller decides how to classify them.
    """
    if diff.remove:
        await remove(diff.remove)
    if diff.add:
        await add(diff.add)
    return progress.refresh() if diff else progress.OK
