"""
All configuration flags, options, settings to fine-tune the controllers.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).

The settings can be overridden in code, or loaded from a YAML file
with the same structure as the dataclasses::

    reconcile:
      poll_interval: 10
    remote:
      request_timeout: 30
    persistence:
      finalizer_prefix: example.com
"""
import dataclasses
import logging
import os
from collections.abc import Mapping
from typing import Any, TypeVar

import yaml

_T = TypeVar('_T')


@dataclasses.dataclass
class ReconcileSettings:

    poll_interval: float = 10
    """
    How soon (in seconds) to re-run a pass that is waiting on something
    in the cluster (e.g. a dependency being created or becoming available).

    The dependencies' changes also trigger the passes via the watches,
    so this is only a safety net for the missed or coalesced events.
    """

    resource_poll_interval: float = 10
    """
    How soon (in seconds) to re-run a pass when the remote resource exists,
    but is not available yet (e.g. still being built by the cloud).
    """

    import_refresh_interval: float | None = 10 * 60
    """
    How often (in seconds) to refresh the status of the imported objects.

    The imported resources are never changed by the controller, so they have
    no other reasons to be reconciled except for the remote changes.
    Set to ``None`` to rely on the external periodic resyncs only.
    """


@dataclasses.dataclass
class RemoteSettings:

    request_timeout: float | None = 60
    """
    A deadline (in seconds) for every single call to the remote APIs.

    A call that has exceeded the deadline is cancelled, and the pass
    is retried later as after any other transient failure.
    """


@dataclasses.dataclass
class PersistenceSettings:

    finalizer_prefix: str = 'korc.dev'
    """
    A domain prefix of the finalizers, as in ``korc.dev/trunk``.

    Every controller puts its own finalizer on its own objects and on the
    dependencies it guards, so the finalizers are per controller, not global.
    """

    field_owner_prefix: str = 'korc.dev'
    """
    A domain prefix of the field managers used to patch the objects.
    """

    def finalizer(self, controller: str) -> str:
        return f'{self.finalizer_prefix}/{controller}'

    def field_owner(self, controller: str) -> str:
        return f'{self.field_owner_prefix}/{controller}'


@dataclasses.dataclass
class LoggingSettings:

    format: str = 'full'
    """ One of: ``plain``, ``full``, ``json``. """

    prefix: bool | None = None
    """ Prefix the messages with the object's namespace/name (default: for text formats). """

    refkey: str | None = None
    """ The key for the object reference in the JSON logs (default: ``object``). """

    level: str = 'INFO'


@dataclasses.dataclass
class OperatorSettings:
    reconcile: ReconcileSettings = dataclasses.field(default_factory=ReconcileSettings)
    remote: RemoteSettings = dataclasses.field(default_factory=RemoteSettings)
    persistence: PersistenceSettings = dataclasses.field(default_factory=PersistenceSettings)
    logging: LoggingSettings = dataclasses.field(default_factory=LoggingSettings)


def load_settings(path: str | os.PathLike[str]) -> OperatorSettings:
    """
    Load the settings from a YAML file, with defaults for all absent values.
    """
    with open(path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Settings must be a mapping, got {type(data).__name__}: {path}")
    settings = _overlay(OperatorSettings(), data, path='')
    logging.getLogger(__name__).debug(f"Loaded settings from {path}.")
    return settings


def _overlay(obj: _T, data: Mapping[str, Any], *, path: str) -> _T:
    fields = {field.name: field for field in dataclasses.fields(obj)}  # type: ignore[arg-type]
    for key, value in data.items():
        if key not in fields:
            raise ValueError(f"Unknown setting: {path}{key}")
        current = getattr(obj, key)
        if dataclasses.is_dataclass(current):
            if not isinstance(value, Mapping):
                raise ValueError(f"Setting {path}{key} must be a mapping, got {value!r}")
            _overlay(current, value, path=f'{path}{key}.')
        else:
            setattr(obj, key, value)
    return obj
