"""
The generic reconciler: one pass over one object of any resource kind.

The reconciler is invoked by the work-queue of the surrounding framework with
the object's key, at most once at a time for the same object. It reads the
object fresh, decides what to do based on its state, does it, and reports
the outcome both to the user (as the object's conditions) and to the queue
(as the requeueing decision). It never sleeps or blocks to wait for anything:
all the waiting is expressed as a requeue after some delay.

The kind-specific logic is delegated to the kind's actuator
(see :mod:`korc._core.intents.interfaces`). The remote calls are done
sequentially, each bounded by ``settings.remote.request_timeout``.

The remote ID, once stored in the status, is never changed or cleared.
If the remote resource with that ID disappears, it is reported as
a terminal error and is not re-created: the accidental deletion
of the remote resource requires the user's intervention.
"""
import asyncio
import copy
import dataclasses
from collections.abc import AsyncIterable, Awaitable
from typing import Any, Generic, TypeVar

from korc._cogs.clients import api, errors
from korc._cogs.configs import configuration
from korc._cogs.helpers import typedefs
from korc._cogs.structs import bodies, conditions, finalizers, patches
from korc._core.actions import errors as actions_errors
from korc._core.actions import loggers, progress
from korc._core.engines import credentials, guards
from korc._core.intents import interfaces
from korc._core.reactor import states

ResourceT = TypeVar('ResourceT')
_T = TypeVar('_T')


@dataclasses.dataclass(frozen=True)
class ReconcileResult:
    """
    What the work-queue should do with the object after the pass.

    ``requeue_after`` is a delay of a regular re-run (no backoff).
    ``error`` is a transient failure: re-run with an exponential backoff.
    Neither of them means that the object is settled until the next change.
    """
    requeue_after: float | None = None
    error: BaseException | None = None


class GenericController(Generic[ResourceT]):

    def __init__(
            self,
            *,
            name: str,
            kind: str,
            client: api.ClusterClient,
            actuator_factory: interfaces.ActuatorFactory[ResourceT],
            status_writer: interfaces.StatusWriter[ResourceT],
            scope_factory: credentials.ScopeFactory,
            registry: guards.DeletionGuardRegistry,
            settings: configuration.OperatorSettings | None = None,
    ) -> None:
        super().__init__()
        self.kind = kind
        self.client = client
        self.actuator_factory = actuator_factory
        self.status_writer = status_writer
        self.registry = registry
        self.settings = settings if settings is not None else configuration.OperatorSettings()
        self.controller = interfaces.ResourceController(
            name=name,
            client=client,
            scope_factory=scope_factory,
            registry=registry,
            settings=self.settings,
        )

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.controller.name!r} for {self.kind}>'

    @property
    def finalizer(self) -> str:
        return self.controller.finalizer

    @property
    def field_owner(self) -> str:
        return self.controller.field_owner

    async def reconcile(self, key: bodies.ObjectKey) -> ReconcileResult:
        try:
            body = await self.client.get(self.kind, key)
        except errors.APINotFoundError:
            return ReconcileResult()  # deleted meanwhile, nothing to do

        logger = loggers.ObjectLogger(body=body, settings=self.settings)
        state = states.get_state(body)
        logger.debug(f"Reconciling in the {state.value!r} state.")

        if state == states.ObjectState.DELETING:
            try:
                status = await self._reconcile_delete(body, logger)
            except Exception as e:
                status = progress.wrap_error(e)
            if status:
                try:
                    await self._publish_deleting(body, status)
                except errors.APIError as e:
                    status |= progress.wrap_error(e)
            return self._conclude(body, None, status, logger)

        if state == states.ObjectState.UNMANAGED:
            logger.debug("Neither the resource nor the import are specified; nothing to do.")
            return ReconcileResult()

        if conditions.is_terminal(body):
            logger.debug("A terminal failure is recorded for this generation; waiting for a spec change.")
            return ReconcileResult()

        resource: ResourceT | None = None
        reconciled: bodies.RawBody | None
        try:
            reconciled, resource, status = await self._reconcile_normal(body, logger)
        except Exception as e:
            reconciled, status = body, progress.wrap_error(e)

        if reconciled is None:
            logger.debug("Deleted while adding the finalizer; nothing to do.")
            return ReconcileResult()
        body = reconciled

        try:
            body = await self._publish(body, resource, status)
        except errors.APIError as e:
            status |= progress.wrap_error(e)
        return self._conclude(body, resource, status, logger)

    async def _reconcile_normal(
            self,
            body: bodies.RawBody,
            logger: typedefs.Logger,
    ) -> tuple[bodies.RawBody | None, ResourceT | None, progress.ReconcileStatus]:

        # The finalizer goes first, so that nothing is created remotely without it.
        if not finalizers.is_deletion_blocked(body, self.finalizer):
            patch = patches.Patch()
            finalizers.block_deletion(body=body, patch=patch, finalizer=self.finalizer)
            patched = await self.client.patch(self.kind, bodies.get_key(body), patch,
                                              field_manager=self.field_owner)
            if patched is None:
                return None, None, progress.OK
            body = patched
            logger.debug(f"Added the finalizer {self.finalizer!r}.")

        actuator, status = await self.actuator_factory.new_actuator(body, self.controller)
        if actuator is None or status.needs_reschedule()[0]:
            return body, None, status

        body, resource, resource_status = await self._resolve_resource(body, actuator, logger)
        status |= resource_status
        if resource is None or status.needs_reschedule()[0]:
            return body, resource, status

        if bodies.get_import_spec(body) is None and not bodies.is_unmanaged(body):
            resource, converge_status = await self._converge(body, actuator, resource, logger)
            status |= converge_status

        return body, resource, status

    async def _resolve_resource(
            self,
            body: bodies.RawBody,
            actuator: interfaces.Actuator[ResourceT],
            logger: typedefs.Logger,
    ) -> tuple[bodies.RawBody, ResourceT | None, progress.ReconcileStatus]:
        resource_id = bodies.get_status_id(body)
        if resource_id is not None:
            resource, status = await self._deadline(actuator.get_resource_by_id(resource_id))
            if errors.is_not_found(status.error):
                logger.error(f"The remote resource {resource_id} is not found; it is not re-created.")
                return body, None, progress.wrap_error(actions_errors.TerminalError(
                    f"The remote resource {resource_id} has been deleted externally.",
                    reason=conditions.ConditionReason.UNRECOVERABLE_ERROR,
                ))
            return body, resource, status

        import_spec = bodies.get_import_spec(body)
        if import_spec is not None:
            resource, status = await self._import(body, actuator, import_spec)
        else:
            resource, status = await self._adopt_or_create(body, actuator, logger)

        if resource is not None:
            resource_id = actuator.get_resource_id(resource)
            body = await self._persist_id(body, resource_id)
            logger.info(f"Bound to the remote resource {resource_id}.")
        return body, resource, status

    async def _import(
            self,
            body: bodies.RawBody,
            actuator: interfaces.Actuator[ResourceT],
            import_spec: Any,
    ) -> tuple[ResourceT | None, progress.ReconcileStatus]:
        poll_after = self.settings.reconcile.resource_poll_interval
        if import_spec.get('id'):
            import_id = import_spec['id']
            resource, status = await self._deadline(actuator.get_resource_by_id(import_id))
            if errors.is_not_found(status.error):
                return None, progress.waiting_on_remote(
                    f"Waiting for the remote resource {import_id} to be created externally.", poll_after)
            return resource, status

        elif import_spec.get('filter'):
            candidates, status = await self._deadline(actuator.list_for_import(body, import_spec['filter']))
            if candidates is None or status.needs_reschedule()[0]:
                return None, status
            found = await self._deadline(_collect(candidates, limit=2))
            if not found:
                return None, progress.waiting_on_remote(
                    "Waiting for a remote resource matching the import filter to be created externally.",
                    poll_after)
            elif len(found) > 1:
                return None, progress.wrap_error(actions_errors.TerminalError(
                    "The import filter matches more than one remote resource.",
                    reason=conditions.ConditionReason.INVALID_CONFIGURATION,
                ))
            return found[0], status

        else:
            return None, progress.wrap_error(actions_errors.TerminalError(
                "The import must specify either an id or a filter.",
                reason=conditions.ConditionReason.INVALID_CONFIGURATION,
            ))

    async def _adopt_or_create(
            self,
            body: bodies.RawBody,
            actuator: interfaces.Actuator[ResourceT],
            logger: typedefs.Logger,
    ) -> tuple[ResourceT | None, progress.ReconcileStatus]:
        candidates = actuator.list_for_adoption(body)
        if candidates is not None:
            logger.debug(f"Looking for the remote resources to adopt ({states.ObjectState.ADOPTING.value}).")
            found = await self._deadline(_collect(candidates, limit=2))
            if len(found) == 1:
                logger.info(f"Adopting the existing remote resource {actuator.get_resource_id(found[0])}.")
                return found[0], progress.OK
            elif found:
                logger.warning("Several remote resources match for adoption; creating a new one.")

        if bodies.is_unmanaged(body):
            return None, progress.waiting_on_remote(
                "Waiting for an unmanaged remote resource to be created externally.",
                self.settings.reconcile.resource_poll_interval)

        resource, status = await self._deadline(actuator.create_resource(body))
        if status.error is not None and not status.is_terminal() and not errors.is_retryable(status.error):
            status = progress.wrap_error(actions_errors.TerminalError(
                f"Invalid configuration creating the remote resource: {status.error}",
                reason=conditions.ConditionReason.INVALID_CONFIGURATION,
            ))
        if resource is not None:
            logger.info(f"Created the remote resource {actuator.get_resource_id(resource)}.")
        return resource, status

    async def _converge(
            self,
            body: bodies.RawBody,
            actuator: interfaces.Actuator[ResourceT],
            resource: ResourceT,
            logger: typedefs.Logger,
    ) -> tuple[ResourceT | None, progress.ReconcileStatus]:
        resource_id = actuator.get_resource_id(resource)
        status = progress.OK
        for step in actuator.get_resource_reconcilers(body, resource):
            try:
                step_status = await self._deadline(step(body, resource))
            except Exception as e:
                step_status = progress.wrap_error(e)
            status |= step_status
            if step_status.needs_reschedule()[0]:
                break
            if step_status.needs_refresh():
                logger.debug(f"Re-fetching the remote resource {resource_id} after a change.")
                refreshed, refresh_status = await self._deadline(actuator.get_resource_by_id(resource_id))
                status |= refresh_status
                if refreshed is None or refresh_status.needs_reschedule()[0]:
                    break
                resource = refreshed
        return resource, status

    async def _reconcile_delete(
            self,
            body: bodies.RawBody,
            logger: typedefs.Logger,
    ) -> progress.ReconcileStatus:
        key = bodies.get_key(body)
        current = finalizers.get_finalizers(body)
        guard_finalizers = [f for f in self.registry.finalizers_for(self.kind) if f in current]

        # All guards of all finalizers must agree; but the agreed ones can be released already.
        status = progress.OK
        released: list[str] = []
        for finalizer in guard_finalizers:
            try:
                blocked = await self.registry.check_all_guards(self.client, body, finalizer, self.kind)
            except actions_errors.GuardCheckError as e:
                status |= progress.wrap_error(e)
            else:
                if blocked:
                    status |= progress.waiting_on_references(self.kind, key.name)
                else:
                    released.append(finalizer)

        if released:
            body = await self._remove_finalizers(body, released)
            logger.info(f"Released by the deletion guards: {', '.join(released)}.")
            if body is None:
                return progress.OK
        if status:
            logger.info("Still referenced by other objects; postponing the deletion.")
            return status

        if not finalizers.is_deletion_blocked(body, self.finalizer):
            return progress.OK

        known = [self.finalizer] + self.registry.finalizers_for(self.kind)
        foreign = finalizers.get_foreign_finalizers(body, known)
        if foreign:
            return progress.waiting_on_finalizers(foreign)

        resource_id = bodies.get_status_id(body)
        if resource_id is None:
            logger.debug("No remote resource was bound; nothing to delete remotely.")
        elif bodies.get_import_spec(body) is not None or bodies.is_unmanaged(body):
            logger.info(f"The remote resource {resource_id} is not managed; leaving it as is.")
        elif bodies.is_detached_on_delete(body):
            logger.info(f"The remote resource {resource_id} is detached; leaving it as is.")
        else:
            status = await self._delete_remote(body, resource_id, logger)
            if status:
                return status

        await self._remove_finalizers(body, [self.finalizer])
        logger.info(f"Removed the finalizer {self.finalizer!r}.")
        return progress.OK

    async def _delete_remote(
            self,
            body: bodies.RawBody,
            resource_id: str,
            logger: typedefs.Logger,
    ) -> progress.ReconcileStatus:
        actuator, status = await self.actuator_factory.new_actuator(body, self.controller)
        if actuator is None or status.needs_reschedule()[0]:
            return status

        resource, status = await self._deadline(actuator.get_resource_by_id(resource_id))
        if errors.is_not_found(status.error):
            logger.info(f"The remote resource {resource_id} is already gone.")
            return progress.OK
        if resource is None or status.needs_reschedule()[0]:
            return status

        status = await self._deadline(actuator.delete_resource(body, resource))
        if errors.is_not_found(status.error):
            return progress.OK
        if status:
            return status
        logger.info(f"Deleted the remote resource {resource_id}.")

        # The remote deletion can take time: release the object only when the resource is gone.
        _, status = await self._deadline(actuator.get_resource_by_id(resource_id))
        if errors.is_not_found(status.error):
            return progress.OK
        return status | progress.waiting_on_remote(
            f"Waiting for the remote resource {resource_id} to be deleted.",
            self.settings.reconcile.resource_poll_interval)

    async def _remove_finalizers(
            self,
            body: bodies.RawBody,
            names: list[str],
    ) -> bodies.RawBody | None:
        patch = patches.Patch()
        if not finalizers.allow_deletion(body=body, patch=patch, finalizers=names):
            return body
        try:
            return await self.client.patch(self.kind, bodies.get_key(body), patch,
                                           field_manager=self.field_owner)
        except errors.APINotFoundError:
            return None

    async def _persist_id(
            self,
            body: bodies.RawBody,
            resource_id: str,
    ) -> bodies.RawBody:
        patch = patches.Patch()
        patch.status['id'] = resource_id
        patched = await self.client.patch(self.kind, bodies.get_key(body), patch,
                                          field_manager=self.field_owner, subresource='status')
        if patched is not None:
            return patched
        result = copy.deepcopy(body)
        patches.merge(result, patch)  # type: ignore[arg-type]
        return result

    async def _publish(
            self,
            body: bodies.RawBody,
            resource: ResourceT | None,
            status: progress.ReconcileStatus,
    ) -> bodies.RawBody:
        """
        Mirror the remote resource and the pass's outcome into the object's status.
        """
        generation = bodies.get_generation(body)
        available = self.status_writer.resource_available_status(body, resource)
        messages = status.messages()

        if status.is_terminal():
            reason = getattr(status.error, 'reason', conditions.ConditionReason.UNRECOVERABLE_ERROR)
            progressing = conditions.ConditionStatus.FALSE
        elif status.error is not None:
            reason = conditions.ConditionReason.TRANSIENT_ERROR
            progressing = conditions.ConditionStatus.TRUE
        elif status.waits or available != conditions.ConditionStatus.TRUE:
            reason = conditions.ConditionReason.PROGRESSING
            progressing = conditions.ConditionStatus.TRUE
            messages = messages or ["Waiting for the remote resource to be available."]
        else:
            reason = conditions.ConditionReason.SUCCESS
            progressing = conditions.ConditionStatus.FALSE
            messages = ["The remote resource is up to date."]

        if available == conditions.ConditionStatus.TRUE:
            available_reason = conditions.ConditionReason.SUCCESS
            available_message = "The remote resource is available."
        else:
            available_reason = reason
            available_message = '; '.join(messages)

        patch = patches.Patch()
        if resource is not None:
            patch.status['resource'] = self.status_writer.resource_status(resource)
        patch.status['conditions'] = conditions.merge_conditions(conditions.get_conditions(body), [
            conditions.make_condition(type=conditions.AVAILABLE, status=available,
                                      reason=available_reason, message=available_message,
                                      generation=generation),
            conditions.make_condition(type=conditions.PROGRESSING, status=progressing,
                                      reason=reason, message='; '.join(messages),
                                      generation=generation),
        ])
        patched = await self.client.patch(self.kind, bodies.get_key(body), patch,
                                          field_manager=self.field_owner, subresource='status')
        return patched if patched is not None else body

    async def _publish_deleting(
            self,
            body: bodies.RawBody,
            status: progress.ReconcileStatus,
    ) -> None:
        patch = patches.Patch()
        patch.status['conditions'] = conditions.merge_conditions(conditions.get_conditions(body), [
            conditions.make_condition(
                type=conditions.PROGRESSING,
                status=conditions.ConditionStatus.TRUE,
                reason=(conditions.ConditionReason.TRANSIENT_ERROR if status.error is not None else
                        conditions.ConditionReason.PROGRESSING),
                message='; '.join(status.messages()),
                generation=bodies.get_generation(body),
            ),
        ])
        await self.client.patch(self.kind, bodies.get_key(body), patch,
                                field_manager=self.field_owner, subresource='status')

    def _conclude(
            self,
            body: bodies.RawBody,
            resource: ResourceT | None,
            status: progress.ReconcileStatus,
            logger: typedefs.Logger,
    ) -> ReconcileResult:
        blocked, error = status.needs_reschedule()
        if error is not None and status.is_terminal():
            logger.error(f"Terminal failure, not retrying until the spec changes: {error}")
            return ReconcileResult()
        elif error is not None:
            logger.warning(f"Transient failure, retrying with a backoff: {error}")
            return ReconcileResult(error=error)
        elif blocked:
            delay = status.poll_after if status.poll_after is not None else self.settings.reconcile.poll_interval
            logger.debug(f"Waiting, will re-check in {delay}s: {'; '.join(status.messages())}")
            return ReconcileResult(requeue_after=delay)
        elif resource is None:
            return ReconcileResult()
        elif not conditions.is_available(body):
            return ReconcileResult(requeue_after=self.settings.reconcile.resource_poll_interval)
        elif states.get_state(body).is_imported or bodies.is_unmanaged(body):
            return ReconcileResult(requeue_after=self.settings.reconcile.import_refresh_interval)
        else:
            return ReconcileResult()

    async def _deadline(self, coro: Awaitable[_T]) -> _T:
        timeout = self.settings.remote.request_timeout
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise errors.RemoteError(f"The remote call has timed out in {timeout}s.") from e


async def _collect(items: AsyncIterable[_T], *, limit: int) -> list[_T]:
    """ Consume a lazy listing up to the limit (and stop the remote listing there). """
    result: list[_T] = []
    async for item in items:
        result.append(item)
        if len(result) >= limit:
            break
    return result
