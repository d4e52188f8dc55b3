"""
Credentials for the remote APIs, as a guarded dependency on a secret.

Every managed object names a secret with the credentials of the cloud
(``spec.cloudCredentialsRef.secretName``). The secret is resolved fresh
in every pass, before any actuator is built, and is guarded by the controller's
finalizer, so that it is not deleted while the objects still need it
(e.g. to delete their remote resources).

Parsing the secret and constructing the remote clients are specific
to the cloud, and are done by the operator's `ScopeFactory`.
"""
from typing import Any, Protocol

from korc._cogs.clients import api
from korc._cogs.structs import bodies, conditions
from korc._core.actions import errors, progress
from korc._core.engines import dependencies, guards

SECRET_KIND = 'Secret'
CREDENTIALS_FIELD = 'spec.cloudCredentialsRef.secretName'


class ScopeFactory(Protocol):
    """ Makes the remote clients' scope for one object from its credentials. """

    async def new_client_scope(
            self,
            obj: bodies.RawBody,
            secret: bodies.RawBody,
    ) -> Any:
        ...


def credentials_dependency(
        owner_kind: str,
        *,
        finalizer: str,
        field_owner: str,
        registry: guards.DeletionGuardRegistry,
) -> dependencies.DeletionGuardDependency:
    return dependencies.DeletionGuardDependency(
        owner_kind, SECRET_KIND, CREDENTIALS_FIELD,
        finalizer=finalizer,
        field_owner=field_owner,
        registry=registry,
    )


async def resolve_scope(
        client: api.ClusterClient,
        obj: bodies.RawBody,
        dependency: dependencies.Dependency,
        scope_factory: ScopeFactory,
) -> tuple[Any | None, progress.ReconcileStatus]:
    """
    Resolve the credentials of the object into a scope of the remote clients.
    """
    secret, status = await dependency.get_dependency(client, obj, lambda _: True)
    if status:
        return None, status
    if secret is None:
        return None, progress.wrap_error(errors.TerminalError(
            "The cloud credentials are not specified in spec.cloudCredentialsRef.",
            reason=conditions.ConditionReason.INVALID_CONFIGURATION,
        ))
    scope = await scope_factory.new_client_scope(obj, secret)
    return scope, progress.OK
