import asyncio
import dataclasses

import pytest

from korc._cogs.clients.errors import RemoteError, RemoteNotFoundError
from korc._cogs.configs.configuration import OperatorSettings
from korc._cogs.structs import bodies
from korc._cogs.structs.conditions import ConditionStatus
from korc._core.actions import progress
from korc._core.intents.interfaces import Actuator, ActuatorFactory, Listing, StatusWriter
from korc._core.reactor.reconciling import GenericController

KIND = 'Widget'
FINALIZER = 'korc.dev/widget'


@dataclasses.dataclass
class Widget:
    id: str
    name: str
    status: str = 'ACTIVE'
    size: int = 1


class FakeRemote:
    """ The remote widgets API with the calls recorded and the errors injectable. """

    def __init__(self):
        self.widgets = {}
        self.calls = []
        self.errors = {}
        self.delays = {}
        self.initial_status = 'ACTIVE'
        self.deletion_is_slow = False
        self._counter = 0

    def add(self, name, **kwargs):
        self._counter += 1
        widget = Widget(id=f'w-{self._counter}', name=name, **kwargs)
        self.widgets[widget.id] = widget
        return widget

    async def call(self, op, *args):
        self.calls.append((op, *args))
        if op in self.delays:
            await asyncio.sleep(self.delays[op])
        if op in self.errors:
            raise self.errors[op]

    def ops(self):
        return [call[0] for call in self.calls]


class FakeActuator(Actuator):

    def __init__(self, remote):
        super().__init__()
        self.remote = remote

    def get_resource_id(self, resource):
        return resource.id

    async def get_resource_by_id(self, id):
        try:
            await self.remote.call('get', id)
            if id not in self.remote.widgets:
                raise RemoteNotFoundError(f"Widget {id} not found", status=404)
        except RemoteError as e:
            return None, progress.wrap_error(e)
        return dataclasses.replace(self.remote.widgets[id]), progress.OK

    def list_for_adoption(self, obj):
        if bodies.get_resource_spec(obj) is None:
            return None
        name = bodies.get_resource_name(obj)
        return Listing(lambda: self._list(name=name))

    async def list_for_import(self, obj, filter):
        return Listing(lambda: self._list(**filter)), progress.OK

    async def _list(self, **filters):
        await self.remote.call('list', filters)
        for widget in list(self.remote.widgets.values()):
            if all(getattr(widget, field) == value for field, value in filters.items()):
                yield dataclasses.replace(widget)

    async def create_resource(self, obj):
        spec = bodies.get_resource_spec(obj)
        try:
            await self.remote.call('create', bodies.get_resource_name(obj))
        except RemoteError as e:
            return None, progress.wrap_error(e)
        widget = self.remote.add(bodies.get_resource_name(obj),
                                 status=self.remote.initial_status, size=spec.get('size', 1))
        return dataclasses.replace(widget), progress.OK

    async def delete_resource(self, obj, resource):
        try:
            await self.remote.call('delete', resource.id)
        except RemoteError as e:
            return progress.wrap_error(e)
        if self.remote.deletion_is_slow:
            self.remote.widgets[resource.id].status = 'DELETING'
        else:
            del self.remote.widgets[resource.id]
        return progress.OK

    def get_resource_reconcilers(self, obj, resource):
        return [self.update_size]

    async def update_size(self, obj, resource):
        size = bodies.get_resource_spec(obj).get('size', 1)
        if resource.size == size:
            return progress.OK
        await self.remote.call('update', resource.id, size)
        self.remote.widgets[resource.id].size = size
        return progress.refresh()


class FakeActuatorFactory(ActuatorFactory):

    def __init__(self, remote):
        super().__init__()
        self.remote = remote
        self.status = progress.OK

    async def new_actuator(self, obj, controller):
        return FakeActuator(self.remote), self.status


class FakeStatusWriter(StatusWriter):

    def resource_status(self, resource):
        return {'name': resource.name, 'status': resource.status, 'size': resource.size}

    def resource_available_status(self, obj, resource):
        if resource is None:
            return ConditionStatus.UNKNOWN if bodies.get_status_id(obj) else ConditionStatus.FALSE
        return ConditionStatus.TRUE if resource.status == 'ACTIVE' else ConditionStatus.FALSE


@pytest.fixture()
def remote():
    return FakeRemote()


@pytest.fixture()
def factory(remote):
    return FakeActuatorFactory(remote)


@pytest.fixture()
def settings():
    settings = OperatorSettings()
    settings.reconcile.poll_interval = 11
    settings.reconcile.resource_poll_interval = 22
    settings.reconcile.import_refresh_interval = 33
    settings.remote.request_timeout = 1
    return settings


@pytest.fixture()
def controller(cluster, registry, settings, factory):
    return GenericController(
        name='widget',
        kind=KIND,
        client=cluster,
        actuator_factory=factory,
        status_writer=FakeStatusWriter(),
        scope_factory=None,
        registry=registry,
        settings=settings,
    )


@pytest.fixture()
def make_widget(cluster, make_body):
    """ Put a widget object into the cluster and return its key. """
    def make(name='widget-a', *, spec=None, status=None, finalizers=None):
        body = make_body(KIND, name, spec=spec, status=status, finalizers=finalizers)
        return bodies.get_key(cluster.create(body))
    return make


@pytest.fixture()
def conditions_of(cluster):
    def read(key):
        body = cluster.read(KIND, key)
        return {c['type']: (c['status'], c['reason']) for c in body['status']['conditions']}
    return read
