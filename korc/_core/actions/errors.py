"""
The errors that change how a reconcile pass is concluded.

Everything else raised in a pass is a transient failure by default:
infrastructure hiccups, timeouts, optimistic-concurrency conflicts.
Those are retried with a backoff and are never surfaced as permanent.
"""
from korc._cogs.structs import conditions


class TerminalError(Exception):
    """
    A fatal error: the spec cannot be satisfied without a user's edit.

    Retries are useless, so the object is not requeued; the error is recorded
    in the conditions until the object's spec (and generation) changes.
    """

    def __init__(
            self,
            __msg: str,
            *,
            reason: conditions.ConditionReason = conditions.ConditionReason.INVALID_CONFIGURATION,
    ) -> None:
        super().__init__(__msg)
        self.reason = reason


class GuardCheckError(Exception):
    """
    A deletion guard could not be evaluated.

    Whatever the underlying cause is, the dependency is considered referenced,
    and its finalizer is kept until the guard can be evaluated again.
    """
