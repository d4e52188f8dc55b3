"""
Coordination of the deletion guards that share the same finalizer.

Several independent dependencies of one controller can guard the same kind
of objects with the same finalizer: e.g. a trunk's parent port and its subports
are both ports guarded by the trunk controller's finalizer. Any of them can
notice that a guarded object is being deleted, but only one of them removes
the finalizer. Before that, all of them must agree that the object is no longer
referenced by any field they track.

The registry keeps the guards' checkers by ``(finalizer, kind)``. It is
constructed explicitly by the operator and passed to every guarded dependency,
so that isolated instances can coexist (e.g. one per test).

The checkers are registered once at startup and read at every guard check
afterwards: the registry is protected by a reader-writer lock, and the lock
is never held while the checkers are running.
"""
import logging
from collections.abc import Awaitable, Callable

from korc._cogs.clients import api
from korc._cogs.helpers import rwlocks, typedefs
from korc._cogs.structs import bodies
from korc._core.actions import errors

logger = logging.getLogger(__name__)

# Returns True if there are references (blocking the removal of the finalizer).
GuardChecker = Callable[[api.ClusterClient, bodies.RawBody], Awaitable[bool]]
GuardKey = tuple[str, str]  # (finalizer, kind)


class DeletionGuardRegistry:

    def __init__(self) -> None:
        super().__init__()
        self._lock = rwlocks.ReadWriteLock()
        self._guards: dict[GuardKey, list[tuple[GuardChecker, typedefs.Logger]]] = {}

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {sorted(self._guards)!r}>'

    def register_guard(
            self,
            finalizer: str,
            kind: str,
            checker: GuardChecker,
            logger: typedefs.Logger | None = None,
    ) -> None:
        with self._lock.writing():
            guards = self._guards.setdefault((finalizer, kind), [])
            guards.append((checker, logger if logger is not None else logging.getLogger(__name__)))

    def finalizers_for(self, kind: str) -> list[str]:
        """ All finalizers that guard the objects of this kind, in registration order. """
        with self._lock.reading():
            return [finalizer for finalizer, guarded_kind in self._guards if guarded_kind == kind]

    def kinds_for(self, finalizer: str | None = None) -> list[str]:
        """ All kinds that are guarded (with this finalizer, if specified), in registration order. """
        with self._lock.reading():
            kinds = [kind for guard_finalizer, kind in self._guards
                     if finalizer is None or guard_finalizer == finalizer]
        return list(dict.fromkeys(kinds))

    async def check_all_guards(
            self,
            client: api.ClusterClient,
            dep: bodies.RawBody,
            finalizer: str,
            kind: str,
    ) -> bool:
        """
        Check if any guard of this finalizer & kind still sees references.

        Returns ``True`` if ANY guard has references (blocking the removal
        of the finalizer), ``False`` if ALL guards agree there are no references.
        If no guards are registered, there is nothing to block the removal.

        If a guard fails to check, `GuardCheckError` is raised: the references
        must be assumed as existing (fail-safe), so the finalizer is kept.
        """
        with self._lock.reading():
            guards = list(self._guards.get((finalizer, kind), []))

        if not guards:
            return False

        key = bodies.get_key(dep)
        logger.debug(f"Checking {len(guards)} deletion guard(s) of {finalizer!r} for {kind}/{key}.")

        for checker, guard_logger in guards:
            try:
                has_references = await checker(client, dep)
            except Exception as e:
                guard_logger.error(f"Error checking the deletion guard of {finalizer!r} for "
                                   f"{kind}/{key}; failing safe (not removing the finalizer): {e}")
                raise errors.GuardCheckError(f"Deletion guard check failed: {e}") from e
            if has_references:
                guard_logger.debug(f"A deletion guard of {finalizer!r} has references "
                                   f"to {kind}/{key}; blocking the finalizer removal.")
                return True

        logger.debug(f"All deletion guards of {finalizer!r} agree: no references to {kind}/{key}.")
        return False
