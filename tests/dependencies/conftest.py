import pytest

from korc._core.engines.dependencies import DeletionGuardDependency, Dependency


@pytest.fixture()
def dependency():
    return Dependency('Trunk', 'Port', 'spec.resource.portRef')


@pytest.fixture()
def list_dependency():
    return Dependency('Trunk', 'Port', 'spec.resource.subports[].portRef')


@pytest.fixture()
def guarded(registry):
    return DeletionGuardDependency(
        'Trunk', 'Port', 'spec.resource.portRef',
        finalizer='korc.dev/trunk', field_owner='korc.dev/trunk', registry=registry,
    )


@pytest.fixture()
def guarded_list(registry):
    return DeletionGuardDependency(
        'Trunk', 'Port', 'spec.resource.subports[].portRef',
        finalizer='korc.dev/trunk', field_owner='korc.dev/trunk', registry=registry,
    )


@pytest.fixture()
def ready():
    return lambda body: body.get('status', {}).get('ready', False)
