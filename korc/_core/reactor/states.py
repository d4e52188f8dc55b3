"""
The states of the managed objects, as derived from their bodies.

The state is never stored: it is recalculated in every pass from the spec,
the status, and the metadata of the object. The transitions happen when the
reconciler changes the status (e.g. stores the remote ID), or when the user
changes the spec or deletes the object::

    Unmanaged   (neither spec.resource nor spec.import; nothing to do)
    Import   -> Imported                    (spec.import; read-only)
    Pending  -> Adopting -> Created -> Available   (spec.resource)
    (any) -> Deleting -> (gone)

"Adopting" only exists within a pass: the adoption either succeeds
and the remote ID is stored immediately, or a new resource is created.
"""
import enum

from korc._cogs.structs import bodies, conditions, finalizers


class ObjectState(str, enum.Enum):
    UNMANAGED = 'Unmanaged'
    IMPORT = 'Import'
    IMPORTED = 'Imported'
    PENDING = 'Pending'
    ADOPTING = 'Adopting'
    CREATED = 'Created'
    AVAILABLE = 'Available'
    DELETING = 'Deleting'

    @property
    def is_imported(self) -> bool:
        return self in (ObjectState.IMPORT, ObjectState.IMPORTED)


def get_state(body: bodies.RawBody) -> ObjectState:
    if finalizers.is_deletion_ongoing(body):
        return ObjectState.DELETING
    elif bodies.get_import_spec(body) is not None:
        return ObjectState.IMPORTED if bodies.get_status_id(body) else ObjectState.IMPORT
    elif bodies.get_resource_spec(body) is not None:
        if not bodies.get_status_id(body):
            return ObjectState.PENDING
        elif conditions.is_available(body):
            return ObjectState.AVAILABLE
        else:
            return ObjectState.CREATED
    else:
        return ObjectState.UNMANAGED
