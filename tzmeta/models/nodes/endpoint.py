from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Uninitialized(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["uninitialized"] = "uninitialized"


class NonResponsive(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["non-responsive"] = "non-responsive"
    reason: str


class Ready(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["ready"] = "ready"
    metadata_json: str


NodeStatus = Annotated[
    Union[Uninitialized, NonResponsive, Ready], Field(discriminator="kind")
]


class StatusSnapshot(BaseModel):
    """Latest probe outcome of a node, as seen by readers."""

    model_config = ConfigDict(frozen=True)

    checked_at: datetime
    status: NodeStatus


_EPOCH = datetime.fromtimestamp(0, timezone.utc)


class NodeEndpoint:
    """A chain node the pool knows about.

    ``status`` is written only by the owning :class:`NodePool` through
    :meth:`_record`; readers get the immutable snapshot.
    """

    def __init__(self, name: str, prefix: str) -> None:
        self.name = name
        self.prefix = prefix.rstrip("/")
        self._status = StatusSnapshot(checked_at=_EPOCH, status=Uninitialized())

    @property
    def status(self) -> StatusSnapshot:
        return self._status

    def _record(self, status: NodeStatus) -> StatusSnapshot:
        self._status = StatusSnapshot(checked_at=datetime.now(timezone.utc), status=status)
        return self._status

    def url(self, path: str) -> str:
        return f"{self.prefix}/{path.lstrip('/')}"

    def __repr__(self) -> str:
        return f"NodeEndpoint(name={self.name!r}, prefix={self.prefix!r})"
