import dataclasses

import pytest

from korc._cogs.clients.errors import RemoteNotFoundError
from korc.controllers.trunk.actuator import TrunkActuator
from korc.controllers.trunk.dependencies import new_dependencies
from korc.controllers.trunk.remote import Trunk

# The client's options that are not the trunk's fields with the same names.
FILTER_ONLY = {'tags', 'tags_any', 'not_tags', 'not_tags_any'}


class FakeTrunkClient:
    """ The trunks' remote API, in memory, with all calls recorded. """

    def __init__(self):
        self.trunks = {}
        self.subports = {}
        self.calls = []
        self.errors = {}
        self.initial_status = 'ACTIVE'
        self._counter = 0

    def add(self, **fields):
        self._counter += 1
        trunk = Trunk(id=f'trunk-id-{self._counter}', **fields)
        self.trunks[trunk.id] = trunk
        self.subports[trunk.id] = list(trunk.subports)
        return trunk

    def ops(self):
        return [call[0] for call in self.calls]

    def _call(self, op, *args, **kwargs):
        self.calls.append((op, *args, kwargs) if kwargs else (op, *args))
        if op in self.errors:
            raise self.errors[op]

    def _check(self, id):
        if id not in self.trunks:
            raise RemoteNotFoundError(f"Trunk {id} not found", status=404)

    async def get_trunk(self, id):
        self._call('get_trunk', id)
        self._check(id)
        return dataclasses.replace(self.trunks[id], subports=tuple(self.subports[id]))

    async def list_trunks(self, **filters):
        self._call('list_trunks', **filters)
        for trunk in list(self.trunks.values()):
            fields = {key: value for key, value in filters.items() if key not in FILTER_ONLY}
            if all(getattr(trunk, key) == value for key, value in fields.items()):
                yield trunk

    async def create_trunk(self, **options):
        self._call('create_trunk', **options)
        return self.add(status=self.initial_status, **options)

    async def update_trunk(self, id, **options):
        self._call('update_trunk', id, **options)
        self._check(id)
        self.trunks[id] = dataclasses.replace(self.trunks[id], **options)
        return self.trunks[id]

    async def delete_trunk(self, id):
        self._call('delete_trunk', id)
        self._check(id)
        del self.trunks[id]

    async def replace_tags(self, id, tags):
        self._call('replace_tags', id, list(tags))
        self._check(id)
        self.trunks[id] = dataclasses.replace(self.trunks[id], tags=tuple(tags))

    async def list_subports(self, id):
        self._call('list_subports', id)
        self._check(id)
        return list(self.subports[id])

    async def add_subports(self, id, subports):
        self._call('add_subports', id, list(subports))
        self.subports[id].extend(subports)

    async def remove_subports(self, id, port_ids):
        self._call('remove_subports', id, list(port_ids))
        self.subports[id] = [s for s in self.subports[id] if s.port_id not in port_ids]


class FakeScope:
    def __init__(self, client):
        self.client = client

    def new_trunk_client(self):
        return self.client


class FakeScopeFactory:
    def __init__(self, client):
        self.client = client
        self.secrets = []

    async def new_client_scope(self, obj, secret):
        self.secrets.append(secret['metadata']['name'])
        return FakeScope(self.client)


@pytest.fixture()
def trunk_client():
    return FakeTrunkClient()


@pytest.fixture()
def scope_factory(trunk_client):
    return FakeScopeFactory(trunk_client)


@pytest.fixture()
def trunk_deps(registry, settings):
    return new_dependencies(registry=registry, settings=settings)


@pytest.fixture()
def actuator(cluster, trunk_client, trunk_deps):
    return TrunkActuator(trunk_client=trunk_client, cluster=cluster, dependencies=trunk_deps)


@pytest.fixture()
def make_trunk(make_body):
    def make(name='trunk-a', *, resource=None, import_=None, status=None, finalizers=None):
        spec = {'cloudCredentialsRef': {'secretName': 'cloud-config', 'cloudName': 'openstack'}}
        if resource is not None:
            spec['resource'] = resource
        if import_ is not None:
            spec['import'] = import_
        return make_body('Trunk', name, spec=spec, status=status, finalizers=finalizers)
    return make
