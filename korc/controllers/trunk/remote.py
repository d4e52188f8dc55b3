"""
The remote side of the trunks: the resources and the client's contract.

A trunk is a network port (the parent port) that carries the traffic of other
ports (the subports), each one tagged with its own segmentation (e.g. VLAN ID).

The concrete client (e.g. on top of the cloud's SDK or its HTTP API
with :func:`korc._cogs.clients.errors.check_response`) is provided
by the operator via the client scope.
"""
import dataclasses
import datetime
from collections.abc import AsyncIterable, Sequence
from typing import Any, Protocol


@dataclasses.dataclass(frozen=True)
class Subport:
    port_id: str
    segmentation_type: str
    segmentation_id: int


@dataclasses.dataclass(frozen=True)
class Trunk:
    id: str
    name: str = ''
    description: str = ''
    port_id: str = ''
    project_id: str = ''
    admin_state_up: bool = True
    status: str = ''
    tags: Sequence[str] = ()
    subports: Sequence[Subport] = ()
    revision_number: int = 0
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None


class TrunkClient(Protocol):
    """
    The remote API of the trunks. All errors are raised as `RemoteError` or its descendants.
    """

    async def get_trunk(self, id: str) -> Trunk:
        ...

    def list_trunks(self, **filters: Any) -> AsyncIterable[Trunk]:
        """ A lazy listing; an async generator is enough, it is wrapped into a restartable `Listing`. """
        ...

    async def create_trunk(self, **options: Any) -> Trunk:
        ...

    async def update_trunk(self, id: str, **options: Any) -> Trunk:
        ...

    async def delete_trunk(self, id: str) -> None:
        ...

    async def replace_tags(self, id: str, tags: Sequence[str]) -> None:
        ...

    async def list_subports(self, id: str) -> list[Subport]:
        ...

    async def add_subports(self, id: str, subports: Sequence[Subport]) -> None:
        ...

    async def remove_subports(self, id: str, port_ids: Sequence[str]) -> None:
        ...


class TrunkScope(Protocol):
    """ The clients' scope, as made by the operator's scope factory from the credentials. """

    def new_trunk_client(self) -> TrunkClient:
        ...
