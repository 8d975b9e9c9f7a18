from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from tzmeta.models.nodes.endpoint import NodeEndpoint, NonResponsive, Ready, StatusSnapshot


def _field(value: Any, name: str) -> Any:
    if not isinstance(value, dict) or name not in value:
        raise ValueError(f"Cannot find {name!r} in {json.dumps(value, separators=(',', ':'))}")
    return value[name]


def head_level(metadata_json: str) -> int:
    """Level of the head block from a ``/blocks/head/metadata`` answer.

    Raises:
        ValueError: when the JSON has neither ``level.level`` nor
            ``level_info.level``.
    """
    value = json.loads(metadata_json)
    if isinstance(value, dict) and "level_info" in value:
        level = _field(_field(value, "level_info"), "level")
    else:
        level = _field(_field(value, "level"), "level")
    if not isinstance(level, int):
        raise ValueError(f"Level is not an integer: {level!r}")
    return level


class NodeStatusResponse(BaseModel):
    """One row of the node-status table."""

    name: str
    prefix: str
    status: str
    checked_at: datetime
    summary: str
    level: Optional[int] = None

    @classmethod
    def from_snapshot(cls, node: NodeEndpoint, snapshot: StatusSnapshot) -> NodeStatusResponse:
        status = snapshot.status
        level: Optional[int] = None
        if isinstance(status, Ready):
            try:
                level = head_level(status.metadata_json)
                summary = f"Level: {level}"
            except ValueError as exc:
                summary = f"Failed to parse the Metadata JSON: {exc}"
        elif isinstance(status, NonResponsive):
            summary = f"Non-responsive: {status.reason}"
        else:
            summary = "Uninitialized"
        return cls(
            name=node.name,
            prefix=node.prefix,
            status=status.kind,
            checked_at=snapshot.checked_at,
            summary=summary,
            level=level,
        )
