from __future__ import annotations

from pydantic import BaseModel


class ClassifyRequest(BaseModel):
    """Request body for POST /metadata/classify: metadata JSON as text."""

    content: str


class ExploreRequest(BaseModel):
    """Request body for POST /metadata/explore: a KT1 address or a URI."""

    input: str
