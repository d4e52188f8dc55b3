"""
The trunks' actuator: reading, adopting, importing, creating, updating, and deleting.

Only the attributes that can be changed on an existing trunk are converged
(the name, the description, the admin state, the tags, and the subports).
The parent port and the project are immutable: they are only used on creation.
"""
import logging
from collections.abc import AsyncIterable, Mapping, Sequence
from typing import Any

from korc._cogs.clients import api, errors
from korc._cogs.structs import bodies, conditions
from korc._core.actions import errors as actions_errors
from korc._core.actions import members, progress, tags
from korc._core.engines import credentials
from korc._core.intents import interfaces
from korc.controllers.trunk import dependencies, remote

logger = logging.getLogger(__name__)


def is_dependency_ready(dep: bodies.RawBody) -> bool:
    return conditions.is_available(dep) and bodies.get_status_id(dep) is not None


class TrunkActuator(interfaces.Actuator[remote.Trunk]):

    def __init__(
            self,
            *,
            trunk_client: remote.TrunkClient,
            cluster: api.ClusterClient,
            dependencies: dependencies.TrunkDependencies,
    ) -> None:
        super().__init__()
        self.trunk_client = trunk_client
        self.cluster = cluster
        self.dependencies = dependencies

    def get_resource_id(self, resource: remote.Trunk) -> str:
        return resource.id

    async def get_resource_by_id(
            self,
            id: str,
    ) -> tuple[remote.Trunk | None, progress.ReconcileStatus]:
        try:
            return await self.trunk_client.get_trunk(id), progress.OK
        except errors.RemoteError as e:
            return None, progress.wrap_error(e)

    def list_for_adoption(
            self,
            obj: bodies.RawBody,
    ) -> AsyncIterable[remote.Trunk] | None:
        resource = bodies.get_resource_spec(obj)
        if resource is None:
            return None
        name = bodies.get_resource_name(obj)
        description = resource.get('description') or ''
        return interfaces.Listing(lambda: self.trunk_client.list_trunks(name=name, description=description))

    async def list_for_import(
            self,
            obj: bodies.RawBody,
            filter: Mapping[str, Any],
    ) -> tuple[AsyncIterable[remote.Trunk] | None, progress.ReconcileStatus]:
        port, port_status = await self.dependencies.port_import.get_dependency(
            self.cluster, obj, is_dependency_ready)
        project, project_status = await self.dependencies.project_import.get_dependency(
            self.cluster, obj, is_dependency_ready)
        status = port_status | project_status
        if status.needs_reschedule()[0]:
            return None, status

        options: dict[str, Any] = {
            'name': filter.get('name'),
            'description': filter.get('description'),
            'admin_state_up': filter.get('adminStateUp'),
            'status': filter.get('status'),
            'port_id': bodies.get_status_id(port) if port is not None else filter.get('portID'),
            'project_id': bodies.get_status_id(project) if project is not None else filter.get('projectID'),
            'tags': _join(filter.get('tags')),
            'tags_any': _join(filter.get('tagsAny')),
            'not_tags': _join(filter.get('notTags')),
            'not_tags_any': _join(filter.get('notTagsAny')),
        }
        options = {key: value for key, value in options.items() if value is not None}
        return interfaces.Listing(lambda: self.trunk_client.list_trunks(**options)), status

    async def create_resource(
            self,
            obj: bodies.RawBody,
    ) -> tuple[remote.Trunk | None, progress.ReconcileStatus]:
        resource = bodies.get_resource_spec(obj)
        if resource is None:
            return None, progress.wrap_error(actions_errors.TerminalError(
                "Creation requested, but spec.resource is not set.",
                reason=conditions.ConditionReason.INVALID_CONFIGURATION,
            ))

        port, status = await self.dependencies.port.get_dependency(self.cluster, obj, is_dependency_ready)
        project = None
        if resource.get('projectRef'):
            project, project_status = await self.dependencies.project.get_dependency(
                self.cluster, obj, is_dependency_ready)
            status |= project_status
        if status.needs_reschedule()[0]:
            return None, status

        options: dict[str, Any] = {
            'name': bodies.get_resource_name(obj),
            'description': resource.get('description') or '',
            'port_id': bodies.get_status_id(port) if port is not None else '',
        }
        if project is not None:
            options['project_id'] = bodies.get_status_id(project)
        if resource.get('adminStateUp') is not None:
            options['admin_state_up'] = resource['adminStateUp']

        try:
            trunk = await self.trunk_client.create_trunk(**options)
        except errors.RemoteError as e:
            # A conflict or a bad request will not succeed until the spec is changed.
            if not errors.is_retryable(e):
                terminal = actions_errors.TerminalError(
                    f"Invalid configuration creating the resource: {e}",
                    reason=conditions.ConditionReason.INVALID_CONFIGURATION,
                )
                terminal.__cause__ = e
                return None, progress.wrap_error(terminal)
            return None, progress.wrap_error(e)
        return trunk, progress.OK

    async def delete_resource(
            self,
            obj: bodies.RawBody,
            resource: remote.Trunk,
    ) -> progress.ReconcileStatus:
        try:
            await self.trunk_client.delete_trunk(resource.id)
        except errors.RemoteError as e:
            return progress.wrap_error(e)
        return progress.OK

    def get_resource_reconcilers(
            self,
            obj: bodies.RawBody,
            resource: remote.Trunk,
    ) -> Sequence[interfaces.ResourceReconciler[remote.Trunk]]:
        spec = bodies.get_resource_spec(obj) or {}

        async def replace_tags(new_tags: Sequence[str]) -> None:
            await self.trunk_client.replace_tags(resource.id, new_tags)

        return [
            _wrapped(tags.reconcile_tags(spec.get('tags'), resource.tags, replace_tags)),
            self.update_resource,
            self.reconcile_subports,
        ]

    async def update_resource(
            self,
            obj: bodies.RawBody,
            resource: remote.Trunk,
    ) -> progress.ReconcileStatus:
        spec = bodies.get_resource_spec(obj)
        if spec is None:
            return progress.wrap_error(actions_errors.TerminalError(
                "Update requested, but spec.resource is not set.",
                reason=conditions.ConditionReason.INVALID_CONFIGURATION,
            ))

        options: dict[str, Any] = {}
        handle_name_update(options, obj, resource)
        handle_description_update(options, spec, resource)
        handle_admin_state_up_update(options, spec, resource)
        if not options:
            logger.debug(f"No changes for the trunk {resource.id}.")
            return progress.OK

        try:
            await self.trunk_client.update_trunk(resource.id, **options)
        except errors.RemoteError as e:
            # A conflict will not succeed until the spec is changed.
            if errors.is_conflict(e):
                terminal = actions_errors.TerminalError(
                    f"Invalid configuration updating the resource: {e}",
                    reason=conditions.ConditionReason.INVALID_CONFIGURATION,
                )
                terminal.__cause__ = e
                return progress.wrap_error(terminal)
            return progress.wrap_error(e)
        return progress.refresh()

    async def reconcile_subports(
            self,
            obj: bodies.RawBody,
            resource: remote.Trunk,
    ) -> progress.ReconcileStatus:
        spec = bodies.get_resource_spec(obj)
        if spec is None:
            return progress.OK

        ports, status = await self.dependencies.subport.get_dependencies(self.cluster, obj, is_dependency_ready)
        if status.needs_reschedule()[0]:
            return status

        desired = [
            remote.Subport(
                port_id=bodies.get_status_id(ports[subport['portRef']]) or '',
                segmentation_type=subport.get('segmentationType', ''),
                segmentation_id=subport.get('segmentationID', 0),
            )
            for subport in spec.get('subports') or []
        ]

        async def add(subports: Sequence[remote.Subport]) -> None:
            logger.info(f"Adding subports to the trunk {resource.id}: {[s.port_id for s in subports]}")
            await self.trunk_client.add_subports(resource.id, subports)

        async def remove(subports: Sequence[remote.Subport]) -> None:
            logger.info(f"Removing subports from the trunk {resource.id}: {[s.port_id for s in subports]}")
            await self.trunk_client.remove_subports(resource.id, [s.port_id for s in subports])

        try:
            observed = await self.trunk_client.list_subports(resource.id)
            diff = members.diff_members(desired, observed, key=_subport_key, params=_subport_params)
            return await members.converge_members(diff, add=add, remove=remove)
        except errors.RemoteError as e:
            return progress.wrap_error(e)


class TrunkActuatorFactory(interfaces.ActuatorFactory[remote.Trunk]):

    def __init__(self, dependencies: dependencies.TrunkDependencies) -> None:
        super().__init__()
        self.dependencies = dependencies

    async def new_actuator(
            self,
            obj: bodies.RawBody,
            controller: interfaces.ResourceController,
    ) -> tuple[TrunkActuator | None, progress.ReconcileStatus]:
        scope, status = await credentials.resolve_scope(
            controller.client, obj, self.dependencies.credentials, controller.scope_factory)
        if scope is None:
            return None, status
        actuator = TrunkActuator(
            trunk_client=scope.new_trunk_client(),
            cluster=controller.client,
            dependencies=self.dependencies,
        )
        return actuator, status


def handle_name_update(options: dict[str, Any], obj: bodies.RawBody, resource: remote.Trunk) -> None:
    name = bodies.get_resource_name(obj)
    if resource.name != name:
        options['name'] = name


def handle_description_update(options: dict[str, Any], spec: Mapping[str, Any], resource: remote.Trunk) -> None:
    description = spec.get('description') or ''
    if resource.description != description:
        options['description'] = description


def handle_admin_state_up_update(options: dict[str, Any], spec: Mapping[str, Any], resource: remote.Trunk) -> None:
    admin_state_up = spec.get('adminStateUp')
    admin_state_up = True if admin_state_up is None else admin_state_up  # the default is "up"
    if resource.admin_state_up != admin_state_up:
        options['admin_state_up'] = admin_state_up


def _wrapped(step: tags.TagsReconciler) -> interfaces.ResourceReconciler[remote.Trunk]:
    async def reconcile(obj: bodies.RawBody, resource: remote.Trunk) -> progress.ReconcileStatus:
        try:
            return await step(obj, resource)
        except errors.RemoteError as e:
            return progress.wrap_error(e)
    return reconcile


def _subport_key(subport: remote.Subport) -> str:
    return subport.port_id


def _subport_params(subport: remote.Subport) -> tuple[str, int]:
    return subport.segmentation_type, subport.segmentation_id


def _join(values: Sequence[str] | None) -> str | None:
    return ','.join(values) if values else None
