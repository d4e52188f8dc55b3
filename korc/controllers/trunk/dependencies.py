"""
The references of the trunks to other objects.

The ports (parent and subports) and the project of a managed trunk are guarded
by the trunk controller's finalizer: they cannot be deleted while a trunk names
them. The parent port and the subports are both ports guarded with the same
finalizer, so they are coordinated via the deletion guard registry.

The references in the import filter are not guarded: the imported trunks
do not depend on the ports and projects after they are found.
"""
import dataclasses
from collections.abc import Iterator

from korc._cogs.configs import configuration
from korc._core.engines import credentials, dependencies, guards

CONTROLLER_NAME = 'trunk'
KIND = 'Trunk'
PORT_KIND = 'Port'
PROJECT_KIND = 'Project'


@dataclasses.dataclass(frozen=True)
class TrunkDependencies:
    port: dependencies.DeletionGuardDependency
    subport: dependencies.DeletionGuardDependency
    project: dependencies.DeletionGuardDependency
    port_import: dependencies.Dependency
    project_import: dependencies.Dependency
    credentials: dependencies.DeletionGuardDependency

    def __iter__(self) -> Iterator[dependencies.Dependency]:
        return iter(getattr(self, field.name) for field in dataclasses.fields(self))


def new_dependencies(
        *,
        registry: guards.DeletionGuardRegistry,
        settings: configuration.OperatorSettings,
) -> TrunkDependencies:
    finalizer = settings.persistence.finalizer(CONTROLLER_NAME)
    field_owner = settings.persistence.field_owner(CONTROLLER_NAME)
    return TrunkDependencies(
        port=dependencies.DeletionGuardDependency(
            KIND, PORT_KIND, 'spec.resource.portRef',
            finalizer=finalizer, field_owner=field_owner, registry=registry,
        ),
        subport=dependencies.DeletionGuardDependency(
            KIND, PORT_KIND, 'spec.resource.subports[].portRef',
            finalizer=finalizer, field_owner=field_owner, registry=registry,
        ),
        project=dependencies.DeletionGuardDependency(
            KIND, PROJECT_KIND, 'spec.resource.projectRef',
            finalizer=finalizer, field_owner=field_owner, registry=registry,
        ),
        port_import=dependencies.Dependency(KIND, PORT_KIND, 'spec.import.filter.portRef'),
        project_import=dependencies.Dependency(KIND, PROJECT_KIND, 'spec.import.filter.projectRef'),
        credentials=credentials.credentials_dependency(
            KIND, finalizer=finalizer, field_owner=field_owner, registry=registry,
        ),
    )
