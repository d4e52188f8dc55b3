"""
Status conditions of the managed objects.

Every managed object carries two conditions:

* ``Available``: the remote resource exists and is usable by others.
  The dependants only proceed when their dependencies are available.
* ``Progressing``: the controller is still working on the object.
  It is ``False`` when the object is either converged or failed terminally;
  the reason tells which one.

The errors are not separate conditions: they are the reasons
(and messages) of these two conditions.
"""
import datetime
import enum
from collections.abc import Iterable, Mapping
from typing import Any

import iso8601

from korc._cogs.structs import bodies

AVAILABLE = 'Available'
PROGRESSING = 'Progressing'


class ConditionStatus(str, enum.Enum):
    TRUE = 'True'
    FALSE = 'False'
    UNKNOWN = 'Unknown'


class ConditionReason(str, enum.Enum):
    SUCCESS = 'Success'
    PROGRESSING = 'Progressing'
    TRANSIENT_ERROR = 'TransientError'
    INVALID_CONFIGURATION = 'InvalidConfiguration'
    UNRECOVERABLE_ERROR = 'UnrecoverableError'


def get_conditions(body: bodies.RawBody) -> list[bodies.RawCondition]:
    return list(body.get('status', {}).get('conditions', None) or [])


def get_condition(body: bodies.RawBody, type: str) -> bodies.RawCondition | None:
    for condition in get_conditions(body):
        if condition.get('type') == type:
            return condition
    return None


def get_transition_time(condition: Mapping[str, Any]) -> datetime.datetime | None:
    """ The parsed transition time, or ``None`` if it is absent or malformed. """
    value = condition.get('lastTransitionTime')
    if not value:
        return None
    try:
        return iso8601.parse_date(value)
    except iso8601.ParseError:
        return None


def format_time(value: datetime.datetime) -> str:
    """ The Kubernetes format of timestamps: RFC 3339 in UTC, with seconds. """
    return value.astimezone(datetime.timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def is_available(body: bodies.RawBody) -> bool:
    condition = get_condition(body, AVAILABLE)
    return condition is not None and condition.get('status') == ConditionStatus.TRUE.value


def is_terminal(body: bodies.RawBody) -> bool:
    """ Whether a terminal failure is recorded for the current generation of the spec. """
    condition = get_condition(body, PROGRESSING)
    return (condition is not None and
            condition.get('status') == ConditionStatus.FALSE.value and
            condition.get('reason') != ConditionReason.SUCCESS.value and
            condition.get('observedGeneration') == bodies.get_generation(body))


def make_condition(
        *,
        type: str,
        status: ConditionStatus,
        reason: ConditionReason | str,
        message: str,
        generation: int,
        now: datetime.datetime | None = None,
) -> bodies.RawCondition:
    now = now if now is not None else datetime.datetime.now(datetime.timezone.utc)
    return bodies.RawCondition(
        type=type,
        status=status.value,  # type: ignore[typeddict-item]
        reason=reason.value if isinstance(reason, ConditionReason) else reason,
        message=message,
        observedGeneration=generation,
        lastTransitionTime=format_time(now),
    )


def merge_conditions(
        existing: Iterable[bodies.RawCondition],
        updates: Iterable[bodies.RawCondition],
) -> list[bodies.RawCondition]:
    """
    Replace the conditions of the same types, keep all others.

    The transition time is kept from the existing condition if the status
    has not changed, so it reflects the last actual transition. The kept time
    is normalized; a malformed one, or one later than the update's, is replaced.
    """
    result = [dict(condition) for condition in existing]
    for update in updates:
        update = dict(update)
        for idx, condition in enumerate(result):
            if condition.get('type') == update['type']:
                if condition.get('status') == update['status']:
                    previous = get_transition_time(condition)
                    current = get_transition_time(update)
                    if previous is not None and (current is None or previous <= current):
                        update['lastTransitionTime'] = format_time(previous)
                result[idx] = update
                break
        else:
            result.append(update)
    return result  # type: ignore[return-value]
