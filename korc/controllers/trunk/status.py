from typing import Any

from korc._cogs.structs import bodies, conditions
from korc._core.intents import interfaces
from korc.controllers.trunk import remote

TRUNK_STATUS_ACTIVE = 'ACTIVE'
TRUNK_STATUS_DOWN = 'DOWN'


class TrunkStatusWriter(interfaces.StatusWriter[remote.Trunk]):

    def resource_available_status(
            self,
            obj: bodies.RawBody,
            resource: remote.Trunk | None,
    ) -> conditions.ConditionStatus:
        if resource is None:
            if bodies.get_status_id(obj) is None:
                return conditions.ConditionStatus.FALSE
            else:
                return conditions.ConditionStatus.UNKNOWN

        # Both active and down trunks are available.
        if resource.status in (TRUNK_STATUS_ACTIVE, TRUNK_STATUS_DOWN):
            return conditions.ConditionStatus.TRUE
        return conditions.ConditionStatus.FALSE

    def resource_status(self, resource: remote.Trunk) -> dict[str, Any]:
        """ The mirrored fields; the absent ones are ``None`` to be removed by the merge-patch. """
        return {
            'name': resource.name,
            'description': resource.description or None,
            'adminStateUp': resource.admin_state_up,
            'status': resource.status,
            'projectID': resource.project_id,
            'portID': resource.port_id,
            'tags': list(resource.tags),
            'revisionNumber': resource.revision_number,
            'createdAt': resource.created_at.isoformat() if resource.created_at is not None else None,
            'updatedAt': resource.updated_at.isoformat() if resource.updated_at is not None else None,
            'subports': [
                {
                    'portID': subport.port_id,
                    'segmentationType': subport.segmentation_type,
                    'segmentationID': subport.segmentation_id,
                }
                for subport in resource.subports
            ] or None,
        }
