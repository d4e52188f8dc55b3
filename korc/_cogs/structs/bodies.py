"""
All the structures coming from/to the cluster API.

The objects are plain JSON-decoded dicts, exactly as the cluster API returns
them. For type-checking, the well-known fields are declared as `TypedDict`;
all other payload falls into `Any` and is not type-checked.

A managed object looks like this:

.. code-block:: yaml

    apiVersion: korc.dev/v1alpha1
    kind: Trunk
    metadata:
      name: trunk-a
      namespace: default
      generation: 2
      finalizers: [korc.dev/trunk]
    spec:
      cloudCredentialsRef: {secretName: cloud-config, cloudName: openstack}
      managementPolicy: managed       # or: unmanaged
      managedOptions: {onDelete: delete}  # or: detach
      resource:                       # either this (managed creation) ...
        portRef: port-a
      import:                         # ... or this (read-only binding)
        filter: {name: existing-trunk}
    status:
      id: 6b1f...                     # never changes once set
      resource: {name: trunk-a, status: ACTIVE}
      conditions: [...]

The ``resource`` and ``import`` stanzas are mutually exclusive;
the schema validation guarantees it, the framework only relies on it.
"""
from collections.abc import Mapping
from typing import Any, NamedTuple

from typing_extensions import Literal, TypedDict

ConditionStatusLiteral = Literal['True', 'False', 'Unknown']


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    namespace: str
    generation: int
    labels: Mapping[str, str]
    annotations: Mapping[str, str]
    finalizers: list[str]
    resourceVersion: str
    deletionTimestamp: str
    creationTimestamp: str


class RawCondition(TypedDict, total=False):
    type: str
    status: ConditionStatusLiteral
    reason: str
    message: str
    observedGeneration: int
    lastTransitionTime: str


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: Mapping[str, Any]
    status: Mapping[str, Any]


class ObjectKey(NamedTuple):
    """ An identity of an object within its kind. """
    namespace: str | None
    name: str

    def __str__(self) -> str:
        return f'{self.namespace}/{self.name}' if self.namespace else self.name


def get_key(body: RawBody) -> ObjectKey:
    meta = body.get('metadata', {})
    return ObjectKey(namespace=meta.get('namespace'), name=meta['name'])


def get_kind(body: RawBody) -> str:
    return body.get('kind', '')


def get_generation(body: RawBody) -> int:
    return body.get('metadata', {}).get('generation', 0)


def get_resource_spec(body: RawBody) -> Mapping[str, Any] | None:
    return body.get('spec', {}).get('resource')


def get_import_spec(body: RawBody) -> Mapping[str, Any] | None:
    return body.get('spec', {}).get('import')


def get_status_id(body: RawBody) -> str | None:
    return body.get('status', {}).get('id') or None


def get_resource_name(body: RawBody) -> str:
    """
    The name of the remote resource: as in the spec if set, the object's own name otherwise.
    """
    resource = get_resource_spec(body) or {}
    return resource.get('name') or body.get('metadata', {})['name']


def is_unmanaged(body: RawBody) -> bool:
    return body.get('spec', {}).get('managementPolicy', 'managed') == 'unmanaged'


def is_detached_on_delete(body: RawBody) -> bool:
    options = body.get('spec', {}).get('managedOptions') or {}
    return options.get('onDelete', 'delete') == 'detach'
