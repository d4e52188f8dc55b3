"""
The trunk controller: wiring of the trunks' reconciler, dependencies, and watches.

The surrounding framework calls :meth:`TrunkController.reconcile` for the trunks
from its work-queue, and feeds the events of the ports, projects, and secrets
to :meth:`TrunkController.on_dependency_event` to enqueue the affected trunks.
The guarded dependencies being deleted are released by the same event handler.
"""
import dataclasses
import logging

from korc._cogs.clients import api
from korc._cogs.configs import configuration
from korc._cogs.structs import bodies, finalizers
from korc._core.actions import progress
from korc._core.engines import credentials, dependencies, guards
from korc._core.reactor import reconciling
from korc.controllers.trunk import actuator, remote, status
from korc.controllers.trunk import dependencies as trunk_dependencies

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class DependencyEventOutcome:
    enqueued: list[bodies.ObjectKey]
    status: progress.ReconcileStatus


@dataclasses.dataclass(frozen=True)
class TrunkController:
    reconciler: reconciling.GenericController[remote.Trunk]
    dependencies: trunk_dependencies.TrunkDependencies
    client: api.ClusterClient

    async def reconcile(self, key: bodies.ObjectKey) -> reconciling.ReconcileResult:
        return await self.reconciler.reconcile(key)

    async def on_dependency_event(self, kind: str, dep: bodies.RawBody) -> DependencyEventOutcome:
        """
        Handle a change of a port, a project, or a secret.

        Return the trunks to be enqueued, and the outcome of the guard release
        (if the dependency is being deleted); the caller requeues the dependency
        if the outcome is not OK.
        """
        enqueued: dict[bodies.ObjectKey, None] = {}
        for dependency in self.dependencies:
            if dependency.dependency_kind == kind:
                handler = dependency.watch_event_handler(self.client)
                enqueued.update(dict.fromkeys(await handler(dep)))

        # All guards of the same finalizer and kind are checked together, so one release is enough.
        outcome = progress.OK
        registry = self.reconciler.registry
        if finalizers.is_deletion_ongoing(dep) and kind in registry.kinds_for(self.reconciler.finalizer):
            guard = self._guard_for(kind)
            if guard is not None:
                outcome = await guard.reconcile_guard(self.client, dep, logger)
        return DependencyEventOutcome(enqueued=list(enqueued), status=outcome)

    def _guard_for(self, kind: str) -> dependencies.DeletionGuardDependency | None:
        for dependency in self.dependencies:
            if isinstance(dependency, dependencies.DeletionGuardDependency) and \
                    dependency.dependency_kind == kind and \
                    dependency.finalizer == self.reconciler.finalizer:
                return dependency
        return None


def setup(
        client: api.ClusterClient,
        *,
        scope_factory: credentials.ScopeFactory,
        registry: guards.DeletionGuardRegistry,
        settings: configuration.OperatorSettings | None = None,
) -> TrunkController:
    """
    Register the indices and the deletion guards, and make the trunks' controller.

    Done once at startup, before any reconciliation begins.
    """
    settings = settings if settings is not None else configuration.OperatorSettings()
    deps = trunk_dependencies.new_dependencies(registry=registry, settings=settings)
    for dependency in deps:
        dependency.add_to_cluster(client)

    reconciler = reconciling.GenericController[remote.Trunk](
        name=trunk_dependencies.CONTROLLER_NAME,
        kind=trunk_dependencies.KIND,
        client=client,
        actuator_factory=actuator.TrunkActuatorFactory(deps),
        status_writer=status.TrunkStatusWriter(),
        scope_factory=scope_factory,
        registry=registry,
        settings=settings,
    )
    return TrunkController(reconciler=reconciler, dependencies=deps, client=client)
