"""
Errors of the cluster API and of the remote (cloud) APIs.

Neither the cluster client nor the remote clients are implemented here,
and their libraries can vary per deployment and per resource kind. The core
only sees these two hierarchies of errors, never the libraries' own ones.

Only the few HTTP statuses that change the course of a reconciliation
have their own classes: 404 (absence is a state, not a failure),
409 (a duplicate or a concurrent modification), and 400 (a request that
will never succeed as it is). Everything else is the base class of either
hierarchy, with the status kept in the error for the logs.

The libraries' errors are chained as the causes of ours.
"""
import collections.abc
import json
from typing import Any

import aiohttp
from typing_extensions import Literal, TypedDict


class RawStatus(TypedDict, total=False):
    apiVersion: str
    kind: Literal["Status"]
    code: int
    status: Literal["Success", "Failure"]
    reason: str
    message: str


class APIError(Exception):
    """ An error of the cluster API, with its ``Status`` payload if any. """

    def __init__(
            self,
            payload: RawStatus | None,
            *,
            status: int,
    ) -> None:
        self.payload: RawStatus = payload or {}
        self.status = status
        super().__init__(self.message, payload)

    @property
    def message(self) -> str | None:
        return self.payload.get('message')


class APINotFoundError(APIError):
    pass


class APIConflictError(APIError):
    pass


class RemoteError(Exception):
    """ An error of a remote API, where the external resources live. """

    def __init__(
            self,
            message: str | None = None,
            *,
            status: int | None = None,
            payload: Any = None,
    ) -> None:
        if message is None:
            super().__init__()
        else:
            super().__init__(message)
        self.status = status
        self.payload = payload


class RemoteNotFoundError(RemoteError):
    pass


class RemoteConflictError(RemoteError):
    pass


class RemoteBadRequestError(RemoteError):
    pass


REMOTE_ERRORS: dict[int, type[RemoteError]] = {
    400: RemoteBadRequestError,
    404: RemoteNotFoundError,
    409: RemoteConflictError,
}


def is_not_found(exc: BaseException | None) -> bool:
    return isinstance(exc, (APINotFoundError, RemoteNotFoundError))


def is_conflict(exc: BaseException | None) -> bool:
    return isinstance(exc, (APIConflictError, RemoteConflictError))


def is_retryable(exc: BaseException | None) -> bool:
    """
    Can the same request succeed later as it is?

    Conflicts and bad requests cannot, until the object's spec is changed.
    Everything else (networking, throttling, server errors) can.
    """
    return not isinstance(exc, (RemoteConflictError, RemoteBadRequestError))


async def check_response(
        response: aiohttp.ClientResponse,
) -> None:
    """
    Raise our own remote error if the HTTP response of a remote API failed.

    For the concrete remote clients that talk HTTP via ``aiohttp``.
    """
    if response.status < 400:
        return

    # The body is read first: raise_for_status() releases the connection.
    payload: Any
    try:
        payload = await response.json()
    except (json.JSONDecodeError, aiohttp.ContentTypeError, aiohttp.ClientConnectionError):
        payload = None

    message: str | None = None
    if isinstance(payload, collections.abc.Mapping):
        message = payload.get('message') or payload.get('error')

    cls = REMOTE_ERRORS.get(response.status, RemoteError)
    try:
        response.raise_for_status()
    except aiohttp.ClientResponseError as e:
        raise cls(message or str(e), status=response.status, payload=payload) from e
