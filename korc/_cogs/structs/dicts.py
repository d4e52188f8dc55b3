"""
Field paths in the objects' bodies, as used by the dependency references.

A field path is a dot-separated string, where a ``[]`` suffix of an element
expands the list at that element into its items: e.g. ``spec.resource.portRef``
addresses one value, ``spec.resource.subports[].portRef`` addresses one value
per item of the ``subports`` list.
"""
import collections.abc
from collections.abc import Iterator
from typing import Any, Union

FieldPath = tuple[str, ...]
FieldSpec = Union[None, str, FieldPath, list[str]]

LIST_MARKER = '[]'


def parse_field(
        field: FieldSpec,
) -> FieldPath:
    """
    Convert any field notation into a tuple of the path elements.

    ``None`` is the root of a body. The list markers stay in the elements.
    """
    if field is None:
        return ()
    elif isinstance(field, str):
        path = tuple(field.split('.'))
    elif isinstance(field, (list, tuple)):
        path = tuple(field)
    else:
        raise ValueError(f"A field must be either a str, or a list/tuple. Got {field!r}")

    if any(not element or element == LIST_MARKER for element in path):
        raise ValueError(f"A field has an empty element: {field!r}")
    return path


def walk(
        d: Any,
        field: FieldSpec,
) -> Iterator[Any]:
    """
    Yield all values at the field path, expanding the lists marked with ``[]``.

    Absent keys, ``None`` values, and non-dict/non-list intermediate values
    yield nothing: the walk is safe to use on the user-provided specs::

        >>> list(walk({'a': [{'b': 1}, {'b': 2}, {}]}, 'a[].b'))
        [1, 2]
    """
    path = parse_field(field)
    if not path:
        if d is not None:
            yield d
        return

    element, rest = path[0], path[1:]
    expand = element.endswith(LIST_MARKER)
    key = element[:-len(LIST_MARKER)] if expand else element
    if not isinstance(d, collections.abc.Mapping) or d.get(key) is None:
        return

    value = d[key]
    if not expand:
        yield from walk(value, rest)
    elif isinstance(value, collections.abc.Sequence) and not isinstance(value, str):
        for item in value:
            yield from walk(item, rest)
