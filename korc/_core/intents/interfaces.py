"""
The contracts between the generic reconciler and the resource kinds.

Each resource kind (e.g. Trunk) implements:

* an `ActuatorFactory`, which makes an `Actuator` for one object in one pass,
  composed with the remote clients scoped to that object's credentials;
* an `Actuator`, which reads, lists, creates, and deletes the remote resources,
  and provides the ordered convergence steps for the existing ones;
* a `StatusWriter`, which mirrors the remote resource into the object's status
  and decides if the remote resource is available.

The generic reconciler knows nothing about the remote resources themselves:
they are opaque objects, only passed back to the kind's own implementations.

The actuators report the expected outcomes (including the remote errors)
as `ReconcileStatus`; unexpected exceptions are classified by the reconciler.
"""
import abc
import dataclasses
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Mapping, Sequence
from typing import Any, Generic, TypeVar

from korc._cogs.clients import api
from korc._cogs.configs import configuration
from korc._cogs.structs import bodies, conditions
from korc._core.actions import progress
from korc._core.engines import credentials, guards

ResourceT = TypeVar('ResourceT')

# A convergence step: compares the spec with the remote resource, and changes the remote.
ResourceReconciler = Callable[[bodies.RawBody, ResourceT], Awaitable[progress.ReconcileStatus]]


class Listing(Generic[ResourceT]):
    """
    A lazy listing of the remote resources, restartable by iterating again.

    Every iteration calls the remote API anew, so the async generators of
    the remote clients (which can be consumed only once) can be re-iterated::

        return Listing(lambda: client.list_trunks(name=name))
    """

    def __init__(self, fn: Callable[[], AsyncIterable[ResourceT]]) -> None:
        super().__init__()
        self._fn = fn

    def __aiter__(self) -> AsyncIterator[ResourceT]:
        return aiter(self._fn())


@dataclasses.dataclass(frozen=True)
class ResourceController:
    """ What the actuator factories can use from the controller that runs them. """
    name: str
    client: api.ClusterClient
    scope_factory: credentials.ScopeFactory
    registry: guards.DeletionGuardRegistry
    settings: configuration.OperatorSettings = dataclasses.field(default_factory=configuration.OperatorSettings)

    @property
    def finalizer(self) -> str:
        return self.settings.persistence.finalizer(self.name)

    @property
    def field_owner(self) -> str:
        return self.settings.persistence.field_owner(self.name)


class Actuator(abc.ABC, Generic[ResourceT]):

    @abc.abstractmethod
    def get_resource_id(self, resource: ResourceT) -> str:
        raise NotImplementedError

    @abc.abstractmethod
    async def get_resource_by_id(
            self,
            id: str,
    ) -> tuple[ResourceT | None, progress.ReconcileStatus]:
        """ Fetch the remote resource; "not found" is reported as an error in the status. """
        raise NotImplementedError

    @abc.abstractmethod
    def list_for_adoption(
            self,
            obj: bodies.RawBody,
    ) -> AsyncIterable[ResourceT] | None:
        """
        The candidates for adoption, or ``None`` if the adoption is impossible.

        The iterable is lazy and restartable (see `Listing`): every iteration calls the remote API
        anew; the errors are raised from the iteration, not from this method.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def list_for_import(
            self,
            obj: bodies.RawBody,
            filter: Mapping[str, Any],
    ) -> tuple[AsyncIterable[ResourceT] | None, progress.ReconcileStatus]:
        """
        The candidates for import by filter, once the filter's references are resolved.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def create_resource(
            self,
            obj: bodies.RawBody,
    ) -> tuple[ResourceT | None, progress.ReconcileStatus]:
        raise NotImplementedError

    @abc.abstractmethod
    async def delete_resource(
            self,
            obj: bodies.RawBody,
            resource: ResourceT,
    ) -> progress.ReconcileStatus:
        raise NotImplementedError

    def get_resource_reconcilers(
            self,
            obj: bodies.RawBody,
            resource: ResourceT,
    ) -> Sequence[ResourceReconciler[ResourceT]]:
        """ The ordered convergence steps of the existing remote resource. """
        return []


class ActuatorFactory(abc.ABC, Generic[ResourceT]):

    @abc.abstractmethod
    async def new_actuator(
            self,
            obj: bodies.RawBody,
            controller: ResourceController,
    ) -> tuple[Actuator[ResourceT] | None, progress.ReconcileStatus]:
        raise NotImplementedError


class StatusWriter(abc.ABC, Generic[ResourceT]):

    @abc.abstractmethod
    def resource_status(self, resource: ResourceT) -> dict[str, Any]:
        """ The remote resource's fields, as copied into ``status.resource``. """
        raise NotImplementedError

    @abc.abstractmethod
    def resource_available_status(
            self,
            obj: bodies.RawBody,
            resource: ResourceT | None,
    ) -> conditions.ConditionStatus:
        raise NotImplementedError
