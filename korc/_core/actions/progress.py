"""
The outcome of a reconcile pass, composed from the outcomes of its steps.

Every step of a pass (resolving a dependency, fetching or creating a remote
resource, converging an attribute) reports a `ReconcileStatus`. The statuses
are merged into one per pass, and the merged one decides what happens next:
proceed, poll later, retry with a backoff, or stop until the user's edit.

The severity order is: terminal errors > transient errors > waits > OK.
The merge keeps the most severe error, but never loses the wait reasons:
they are all reported to the user in the object's conditions.

The empty status ``ReconcileStatus()`` means OK, and it is falsy,
so that the steps' results can be checked with a simple ``if status: ...``.
"""
import dataclasses
import enum
import functools
from collections.abc import Iterable

from korc._core.actions import errors


class WaitReason(str, enum.Enum):
    CREATION = 'WaitingOnCreation'
    READY = 'WaitingOnReady'
    REMOTE = 'WaitingOnRemote'
    REFERENCES = 'WaitingOnReferences'
    FINALIZERS = 'WaitingOnFinalizers'


@dataclasses.dataclass(frozen=True)
class WaitingOn:
    """ A single reason to wait: non-failing, but blocking the pass. """
    reason: WaitReason
    kind: str | None = None
    name: str | None = None
    message: str | None = None

    def __str__(self) -> str:
        if self.message is not None:
            return self.message
        elif self.reason == WaitReason.CREATION:
            return f"Waiting for {self.kind}/{self.name} to be created"
        elif self.reason == WaitReason.READY:
            return f"Waiting for {self.kind}/{self.name} to be ready"
        elif self.reason == WaitReason.REFERENCES:
            return f"Waiting for {self.kind}/{self.name} to be no longer referenced"
        else:
            return f"{self.reason.value}: {self.kind}/{self.name}"


@dataclasses.dataclass(frozen=True)
class ReconcileStatus:
    waits: tuple[WaitingOn, ...] = ()
    error: BaseException | None = None
    refresh: bool = False
    poll_after: float | None = None

    def __bool__(self) -> bool:
        return bool(self.waits) or self.error is not None or self.refresh or self.poll_after is not None

    def __or__(self, other: "ReconcileStatus") -> "ReconcileStatus":
        if not isinstance(other, ReconcileStatus):
            return NotImplemented
        return self.merge(other)

    def merge(self, other: "ReconcileStatus | None") -> "ReconcileStatus":
        """
        Combine two statuses into one, the more severe error wins.

        The first terminal error is never replaced by later errors of any kind.
        Without terminal errors, the first transient error is kept.
        """
        if other is None or other is self:
            return self
        if not other:
            return self
        if not self:
            return other

        error: BaseException | None
        if _is_terminal(self.error) or (self.error is not None and not _is_terminal(other.error)):
            error = self.error
        else:
            error = other.error

        poll_afters = [delay for delay in (self.poll_after, other.poll_after) if delay is not None]
        return ReconcileStatus(
            waits=self.waits + tuple(wait for wait in other.waits if wait not in self.waits),
            error=error,
            refresh=self.refresh or other.refresh,
            poll_after=min(poll_afters) if poll_afters else None,
        )

    def needs_reschedule(self) -> tuple[bool, BaseException | None]:
        """
        Should the pass stop here, and why.

        * ``(True, None)``: poll later, nothing has failed.
        * ``(True, error)``: retry with a backoff, or stop if the error is terminal.
        * ``(False, None)``: proceed.
        """
        if self.error is not None:
            return True, self.error
        if self.waits:
            return True, None
        return False, None

    def needs_refresh(self) -> bool:
        """ Whether the remote resource must be re-fetched before the next step. """
        return self.refresh

    def is_terminal(self) -> bool:
        return _is_terminal(self.error)

    def messages(self) -> list[str]:
        """ Human-readable messages for the conditions: the error first, then the waits. """
        result: list[str] = []
        if self.error is not None:
            result.append(str(self.error) or type(self.error).__name__)
        result.extend(str(wait) for wait in self.waits)
        return result


OK = ReconcileStatus()


def merge(*statuses: ReconcileStatus | None) -> ReconcileStatus:
    return functools.reduce(ReconcileStatus.merge, (s for s in statuses if s is not None), OK)


def waiting_on(kind: str, name: str, reason: WaitReason) -> ReconcileStatus:
    if reason not in (WaitReason.CREATION, WaitReason.READY):
        raise ValueError(f"Objects can be waited for creation or readiness only, got {reason!r}")
    return ReconcileStatus(waits=(WaitingOn(reason=reason, kind=kind, name=name),))


def waiting_on_remote(message: str, poll_after: float | None = None) -> ReconcileStatus:
    wait = WaitingOn(reason=WaitReason.REMOTE, message=message)
    return ReconcileStatus(waits=(wait,), poll_after=poll_after)


def waiting_on_references(kind: str, name: str) -> ReconcileStatus:
    return ReconcileStatus(waits=(WaitingOn(reason=WaitReason.REFERENCES, kind=kind, name=name),))


def waiting_on_finalizers(names: Iterable[str]) -> ReconcileStatus:
    message = f"Waiting for the finalizers to be removed: {', '.join(names)}"
    return ReconcileStatus(waits=(WaitingOn(reason=WaitReason.FINALIZERS, message=message),))


def refresh() -> ReconcileStatus:
    """ A successful step that has changed the remote resource: re-fetch it. """
    return ReconcileStatus(refresh=True)


def wrap_error(exc: BaseException | None) -> ReconcileStatus:
    """
    Classify an error: terminal if explicitly marked so, transient otherwise.
    """
    if exc is None:
        return OK
    return ReconcileStatus(error=exc)


def _is_terminal(exc: BaseException | None) -> bool:
    return isinstance(exc, errors.TerminalError)
