import logging

import pytest

from korc._cogs.configs.configuration import OperatorSettings
from korc._core.engines.guards import DeletionGuardRegistry
from korc.testing import FakeCluster


def pytest_configure(config):
    config.addinivalue_line('markers', "e2e: end-to-end scenarios over the fake cluster.")


@pytest.fixture()
def settings():
    return OperatorSettings()


@pytest.fixture()
def registry():
    return DeletionGuardRegistry()


@pytest.fixture()
def cluster():
    return FakeCluster()


@pytest.fixture()
def logger():
    return logging.getLogger('korc.tests')


def _make_body(kind, name, *, namespace='default', spec=None, status=None, finalizers=None):
    body = {
        'apiVersion': 'korc.dev/v1alpha1',
        'kind': kind,
        'metadata': {'name': name, 'namespace': namespace},
    }
    if spec is not None:
        body['spec'] = spec
    if status is not None:
        body['status'] = status
    if finalizers is not None:
        body['metadata']['finalizers'] = list(finalizers)
    return body


def _make_available(kind, name, *, id, **kwargs):
    return _make_body(kind, name, status={
        'id': id,
        'conditions': [{'type': 'Available', 'status': 'True', 'reason': 'Success'}],
    }, **kwargs)


@pytest.fixture()
def make_body():
    return _make_body


@pytest.fixture()
def make_available():
    return _make_available
