"""
The main korc module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the library's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from korc._cogs.clients.api import (
    ClusterClient,
    IndexExtractor,
)
from korc._cogs.clients.errors import (
    APIError,
    APINotFoundError,
    APIConflictError,
    RemoteError,
    RemoteNotFoundError,
    RemoteConflictError,
    RemoteBadRequestError,
    is_not_found,
    is_conflict,
    is_retryable,
    check_response,
)
from korc._cogs.configs.configuration import (
    OperatorSettings,
    ReconcileSettings,
    RemoteSettings,
    PersistenceSettings,
    LoggingSettings,
    load_settings,
)
from korc._cogs.helpers.typedefs import (
    Logger,
)
from korc._cogs.helpers.versions import (
    version as __version__,
)
from korc._cogs.structs.bodies import (
    RawBody,
    RawMeta,
    RawCondition,
    ObjectKey,
)
from korc._cogs.structs.conditions import (
    ConditionStatus,
    ConditionReason,
)
from korc._cogs.structs.dicts import (
    FieldSpec,
    FieldPath,
)
from korc._cogs.structs.patches import (
    Patch,
)
from korc._core.actions.errors import (
    TerminalError,
    GuardCheckError,
)
from korc._core.actions.loggers import (
    LogFormat,
    ObjectLogger,
    configure,
)
from korc._core.actions.members import (
    MembersDiff,
    diff_members,
    converge_members,
)
from korc._core.actions.progress import (
    ReconcileStatus,
    WaitReason,
    WaitingOn,
    merge,
    waiting_on,
    waiting_on_remote,
    waiting_on_references,
    waiting_on_finalizers,
    wrap_error,
)
from korc._core.actions.tags import (
    reconcile_tags,
)
from korc._core.engines.credentials import (
    ScopeFactory,
    credentials_dependency,
)
from korc._core.engines.dependencies import (
    Dependency,
    DeletionGuardDependency,
)
from korc._core.engines.guards import (
    DeletionGuardRegistry,
    GuardChecker,
)
from korc._core.engines.indexing import (
    FieldIndex,
)
from korc._core.intents.interfaces import (
    Actuator,
    ActuatorFactory,
    StatusWriter,
    ResourceController,
    ResourceReconciler,
)
from korc._core.reactor.reconciling import (
    GenericController,
    ReconcileResult,
)
from korc._core.reactor.states import (
    ObjectState,
    get_state,
)

__all__ = [
    'ClusterClient', 'IndexExtractor',
    'APIError', 'APINotFoundError', 'APIConflictError',
    'RemoteError', 'RemoteNotFoundError', 'RemoteConflictError', 'RemoteBadRequestError',
    'is_not_found', 'is_conflict', 'is_retryable', 'check_response',
    'OperatorSettings',
    'ReconcileSettings',
    'RemoteSettings',
    'PersistenceSettings',
    'LoggingSettings',
    'load_settings',
    'Logger',
    'RawBody',
    'RawMeta',
    'RawCondition',
    'ObjectKey',
    'ConditionStatus',
    'ConditionReason',
    'FieldSpec',
    'FieldPath',
    'Patch',
    'TerminalError',
    'GuardCheckError',
    'LogFormat',
    'ObjectLogger',
    'configure',
    'MembersDiff',
    'diff_members',
    'converge_members',
    'ReconcileStatus',
    'WaitReason',
    'WaitingOn',
    'merge',
    'waiting_on',
    'waiting_on_remote',
    'waiting_on_references',
    'waiting_on_finalizers',
    'wrap_error',
    'reconcile_tags',
    'ScopeFactory',
    'credentials_dependency',
    'Dependency',
    'DeletionGuardDependency',
    'DeletionGuardRegistry',
    'GuardChecker',
    'FieldIndex',
    'Actuator',
    'ActuatorFactory',
    'StatusWriter',
    'ResourceController',
    'ResourceReconciler',
    'GenericController',
    'ReconcileResult',
    'ObjectState',
    'get_state',
]
