"""
Dependencies: references from the owners to other objects by name.

An owner (e.g. a Trunk) names its dependencies (e.g. Ports) in some fields
of its spec (e.g. ``spec.resource.portRef``, or ``spec.resource.subports[].portRef``
for the lists). A dependency declaration is used for three purposes:

* Resolution: fetch the named objects, and wait until they exist and are ready.
* Triggering: when a dependency changes, find the owners to be reconciled
  (the field index of the owners is maintained by the cluster client).
* Guarding (optional): put a finalizer on every resolved dependency, so that
  it is not deleted while any owner still names it; remove the finalizer
  when the dependency is being deleted and no owner names it anymore.

The "has references" check is always done against the live field index,
never against the owners resolved earlier: the owners can change any time.
"""
import logging
from collections.abc import Awaitable, Callable, Iterable

from korc._cogs.clients import api, errors
from korc._cogs.helpers import typedefs
from korc._cogs.structs import bodies, dicts, finalizers, patches
from korc._core.actions import errors as actions_errors
from korc._core.actions import progress
from korc._core.engines import guards

logger = logging.getLogger(__name__)

NameExtractor = Callable[[bodies.RawBody], Iterable[str | None]]
ReadyPredicate = Callable[[bodies.RawBody], bool]
WatchEventHandler = Callable[[bodies.RawBody], Awaitable[list[bodies.ObjectKey]]]


class Dependency:
    """
    A plain dependency: resolution and triggering only.
    """

    def __init__(
            self,
            owner_kind: str,
            dependency_kind: str,
            field: str,
            extractor: NameExtractor | None = None,
    ) -> None:
        super().__init__()
        self.owner_kind = owner_kind
        self.dependency_kind = dependency_kind
        self.field = field
        self.extractor = extractor

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.owner_kind}.{self.field} -> {self.dependency_kind}>'

    def names(self, owner: bodies.RawBody) -> list[str]:
        """ The names of the referenced objects: non-empty, deduplicated, in order. """
        values = self.extractor(owner) if self.extractor is not None else dicts.walk(owner, self.field)
        return list(dict.fromkeys(str(value) for value in values if value))

    def add_to_cluster(self, client: api.ClusterClient) -> None:
        """ Start indexing the owners by this field. Done once at startup. """
        client.register_index(self.owner_kind, self.field, self.names)

    def watch_event_handler(self, client: api.ClusterClient) -> WatchEventHandler:
        """
        Make a handler of the dependencies' events that returns the owners to enqueue.
        """
        async def handler(dep: bodies.RawBody) -> list[bodies.ObjectKey]:
            owners = await client.list_referrers(self.owner_kind, self.field, bodies.get_key(dep))
            return [bodies.get_key(owner) for owner in owners]
        return handler

    async def get_dependency(
            self,
            client: api.ClusterClient,
            owner: bodies.RawBody,
            ready: ReadyPredicate,
    ) -> tuple[bodies.RawBody | None, progress.ReconcileStatus]:
        """
        Resolve a single-name dependency: the object if ready, or a reason to wait.

        If the owner names nothing in this field (an optional reference),
        there is nothing to wait for and nothing is returned.
        """
        names = self.names(owner)
        if len(names) > 1:
            raise ValueError(f"{self!r} resolves to several names, use get_dependencies(): {names!r}")
        deps, status = await self.get_dependencies(client, owner, ready)
        return (deps.get(names[0]) if names else None), status

    async def get_dependencies(
            self,
            client: api.ClusterClient,
            owner: bodies.RawBody,
            ready: ReadyPredicate,
    ) -> tuple[dict[str, bodies.RawBody], progress.ReconcileStatus]:
        """
        Resolve all named dependencies. All of them must exist and be ready.

        Only the ready dependencies are returned; the missing and non-ready ones
        are reported as the wait reasons in the merged status.
        """
        namespace = bodies.get_key(owner).namespace
        result: dict[str, bodies.RawBody] = {}
        status = progress.OK
        for name in self.names(owner):
            key = bodies.ObjectKey(namespace=namespace, name=name)
            dep, dep_status = await self._resolve(client, owner, key, ready)
            status |= dep_status
            if dep is not None:
                result[name] = dep
        return result, status

    async def _resolve(
            self,
            client: api.ClusterClient,
            owner: bodies.RawBody,
            key: bodies.ObjectKey,
            ready: ReadyPredicate,
    ) -> tuple[bodies.RawBody | None, progress.ReconcileStatus]:
        try:
            dep = await client.get(self.dependency_kind, key)
        except errors.APINotFoundError:
            return None, progress.waiting_on(self.dependency_kind, key.name, progress.WaitReason.CREATION)
        except errors.APIError as e:
            return None, progress.wrap_error(e)
        if not ready(dep):
            return None, progress.waiting_on(self.dependency_kind, key.name, progress.WaitReason.READY)
        return dep, progress.OK


class DeletionGuardDependency(Dependency):
    """
    A dependency that is protected from deletion while referenced.

    Every resolved dependency gets the finalizer, which is only removed when
    the dependency is being deleted and all guards of this finalizer agree
    that nothing references it anymore (see :meth:`reconcile_guard`).
    """

    def __init__(
            self,
            owner_kind: str,
            dependency_kind: str,
            field: str,
            extractor: NameExtractor | None = None,
            *,
            finalizer: str,
            field_owner: str,
            registry: guards.DeletionGuardRegistry,
    ) -> None:
        super().__init__(owner_kind, dependency_kind, field, extractor)
        self.finalizer = finalizer
        self.field_owner = field_owner
        self.registry = registry

    def add_to_cluster(self, client: api.ClusterClient) -> None:
        super().add_to_cluster(client)
        self.registry.register_guard(
            self.finalizer, self.dependency_kind, self.has_references,
            logger=logging.getLogger(f'{__name__}.{self.owner_kind}.{self.field}'),
        )

    async def has_references(self, client: api.ClusterClient, dep: bodies.RawBody) -> bool:
        owners = await client.list_referrers(self.owner_kind, self.field, bodies.get_key(dep))
        return bool(owners)

    async def _resolve(
            self,
            client: api.ClusterClient,
            owner: bodies.RawBody,
            key: bodies.ObjectKey,
            ready: ReadyPredicate,
    ) -> tuple[bodies.RawBody | None, progress.ReconcileStatus]:
        dep, status = await super()._resolve(client, owner, key, ready)
        if dep is None:
            return dep, status

        # Only the owners already bound to remote resources can use a dependency being deleted
        # (e.g. the credentials for the remote deletion). The new owners wait until it is gone.
        if finalizers.is_deletion_ongoing(dep):
            if finalizers.is_deletion_blocked(dep, self.finalizer) and bodies.get_status_id(owner) is not None:
                return dep, status
            return None, progress.waiting_on(self.dependency_kind, key.name, progress.WaitReason.READY)

        if finalizers.is_deletion_blocked(dep, self.finalizer):
            return dep, status

        patch = patches.Patch()
        finalizers.block_deletion(body=dep, patch=patch, finalizer=self.finalizer)
        try:
            patched = await client.patch(self.dependency_kind, key, patch, field_manager=self.field_owner)
        except errors.APIError as e:
            return None, progress.wrap_error(e)
        if patched is None:
            return None, progress.waiting_on(self.dependency_kind, key.name, progress.WaitReason.CREATION)
        logger.debug(f"Added the finalizer {self.finalizer!r} to {self.dependency_kind}/{key}.")
        return patched, progress.OK

    async def reconcile_guard(
            self,
            client: api.ClusterClient,
            dep: bodies.RawBody,
            logger: typedefs.Logger,
    ) -> progress.ReconcileStatus:
        """
        Release a guarded dependency being deleted, if nothing references it.

        Nothing is done for the dependencies that are not being deleted,
        or that do not carry this finalizer (anymore).
        """
        if not finalizers.is_deletion_ongoing(dep) or not finalizers.is_deletion_blocked(dep, self.finalizer):
            return progress.OK

        key = bodies.get_key(dep)
        try:
            blocked = await self.registry.check_all_guards(client, dep, self.finalizer, self.dependency_kind)
        except actions_errors.GuardCheckError as e:
            return progress.wrap_error(e)
        if blocked:
            logger.info(f"{self.dependency_kind}/{key} is still referenced; keeping the finalizer.")
            return progress.waiting_on_references(self.dependency_kind, key.name)

        patch = patches.Patch()
        finalizers.allow_deletion(body=dep, patch=patch, finalizers=[self.finalizer])
        try:
            await client.patch(self.dependency_kind, key, patch, field_manager=self.field_owner)
        except errors.APINotFoundError:
            pass  # already gone, nothing to release
        except errors.APIError as e:
            return progress.wrap_error(e)
        logger.info(f"Removed the finalizer {self.finalizer!r} from {self.dependency_kind}/{key}.")
        return progress.OK
