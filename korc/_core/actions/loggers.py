"""
Per-object logging of the reconcile passes.

Everything that happens in a reconcile pass is logged with the identity of
the object being reconciled, so that the messages of the concurrent passes
of different objects can be told apart: either as a ``[namespace/name]``
prefix in the text formats, or as a separate field in the JSON format.

The identity is carried in the log records' extras (``k8s_ref``),
and is rendered by the formatters of this module only. Third-party formatters
will see the plain messages.
"""
import copy
import enum
import logging
from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any, TextIO

from pythonjsonlogger.core import RESERVED_ATTRS
from pythonjsonlogger.json import JsonFormatter

from korc._cogs.configs import configuration
from korc._cogs.helpers import typedefs
from korc._cogs.structs import bodies

logger = logging.getLogger('korc.objects')

# The field of the object reference in the JSON records, unless configured.
DEFAULT_JSON_REFKEY = 'object'

# The extras that are rendered specially (or not at all) by the JSON formatters.
EXTRA_ATTRS = frozenset({'k8s_ref', 'settings'})

# The lowest log level of each severity of the log collectors.
SEVERITIES: list[tuple[int, str]] = [
    (logging.DEBUG, 'debug'),
    (logging.INFO, 'info'),
    (logging.WARNING, 'warn'),
    (logging.ERROR, 'error'),
]


class LogFormat(enum.Enum):
    """ Log formats, as specified in the settings. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-20.20s [%(levelname)-8.8s] %(message)s'
    JSON = '-json-'  # detected by the identity, never used as a %-format


def make_reference(body: bodies.RawBody) -> dict[str, Any]:
    """
    The identifying fields of the object, as rendered in the logs.

    The fields are copied, so that the later modifications of the object's
    body do not affect the already logged records.
    """
    meta = body.get('metadata', {})
    return {
        'apiVersion': body.get('apiVersion'),
        'kind': body.get('kind'),
        'name': meta.get('name'),
        'uid': meta.get('uid'),
        'namespace': meta.get('namespace'),
    }


def render_prefix(ref: Mapping[str, Any]) -> str:
    namespace = ref.get('namespace')
    name = ref.get('name', '')
    return f"[{namespace}/{name}]" if namespace else f"[{name}]"


def get_severity(levelno: int) -> str:
    for threshold, severity in SEVERITIES:
        if levelno <= threshold:
            return severity
    return 'fatal'


class ObjectFormatter(logging.Formatter):
    """ A base for the formatters that render the object references. """
    prefixing = False

    def format(self, record: logging.LogRecord) -> str:
        ref = getattr(record, 'k8s_ref', None)
        if self.prefixing and ref is not None:
            record = copy.copy(record)  # the other handlers must see the original message
            record.msg = f"{render_prefix(ref)} {record.msg}"
        return super().format(record)


class ObjectTextFormatter(ObjectFormatter):
    pass


class ObjectPrefixingTextFormatter(ObjectTextFormatter):
    prefixing = True


class ObjectJsonFormatter(ObjectFormatter, JsonFormatter):

    def __init__(
            self,
            *args: Any,
            refkey: str | None = None,
            **kwargs: Any,
    ) -> None:
        reserved = set(kwargs.pop('reserved_attrs', RESERVED_ATTRS)) | EXTRA_ATTRS
        kwargs.setdefault('timestamp', True)
        super().__init__(*args, reserved_attrs=reserved, **kwargs)
        self.refkey: str = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: dict[str, Any],
            record: logging.LogRecord,
            message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        ref = getattr(record, 'k8s_ref', None)
        if ref is not None:
            log_record[self.refkey] = ref
        log_record.setdefault('severity', get_severity(record.levelno))


class ObjectPrefixingJsonFormatter(ObjectJsonFormatter):
    prefixing = True


class ObjectLogger(typedefs.LoggerAdapter):
    """
    A logger/adapter to carry the object's identity for formatting.

    Constructed once per reconcile pass of each individual object,
    and passed down to the actuators and the convergence steps.
    """

    def __init__(
            self,
            *,
            body: bodies.RawBody,
            settings: configuration.OperatorSettings | None = None,
    ) -> None:
        super().__init__(logger, {'settings': settings, 'k8s_ref': make_reference(body)})

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        # The message's own extras are kept, the adapter's ones are added to them.
        kwargs['extra'] = {**(self.extra or {}), **kwargs.get('extra', {})}
        return msg, kwargs


# Our own handlers are replaced on re-configuration, the others are kept.
if TYPE_CHECKING:
    class _KorcStreamHandler(logging.StreamHandler[TextIO]):
        pass
else:
    class _KorcStreamHandler(logging.StreamHandler):
        pass


def configure(
        settings: configuration.LoggingSettings | None = None,
) -> None:
    """
    Install the root handler with the object-aware formatter, as configured.

    The asyncio's own messages are silenced unless the level is ``debug``.
    """
    settings = settings if settings is not None else configuration.LoggingSettings()
    handler = _KorcStreamHandler()
    handler.setFormatter(make_formatter(
        log_format=parse_format(settings.format),
        log_prefix=settings.prefix,
        log_refkey=settings.refkey,
    ))

    root = logging.getLogger()
    root.handlers[:] = [h for h in root.handlers if not isinstance(h, _KorcStreamHandler)]
    root.addHandler(handler)
    root.setLevel(settings.level.upper())

    debug = root.level <= logging.DEBUG
    asyncio_logger = logging.getLogger('asyncio')
    asyncio_logger.propagate = debug
    if not debug:
        asyncio_logger.handlers[:] = [logging.NullHandler()]


def make_formatter(
        log_format: LogFormat | str = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> ObjectFormatter:
    """
    Pick a formatter for the format. Unless told otherwise, the text formats
    are prefixed with the object references, the JSON format is not.
    """
    if log_prefix is None:
        log_prefix = log_format is not LogFormat.JSON

    if log_format is LogFormat.JSON:
        cls = ObjectPrefixingJsonFormatter if log_prefix else ObjectJsonFormatter
        return cls(refkey=log_refkey)
    elif isinstance(log_format, LogFormat):
        fmt = log_format.value
    elif isinstance(log_format, str):
        fmt = log_format
    else:
        raise ValueError(f"Unsupported log format: {log_format!r}")
    text_cls = ObjectPrefixingTextFormatter if log_prefix else ObjectTextFormatter
    return text_cls(fmt)


def parse_format(value: str) -> LogFormat | str:
    """ A named format (``plain``, ``full``, ``json``), or a custom %-style format. """
    try:
        return LogFormat[value.upper()]
    except KeyError:
        return value
