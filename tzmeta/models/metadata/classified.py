from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from tzmeta.models.metadata.document import MetadataDocument


class InterfaceClaim(BaseModel):
    """How a document claims TZIP-12 in its ``interfaces``.

    ``value`` is the raw entry for ``invalid`` and the version for
    ``version``; unset for ``just-interface``.
    """

    kind: Literal["invalid", "just-interface", "version"]
    value: Optional[str] = None


class ClassificationLog(BaseModel):
    level: Literal["info", "error", "success"]
    message: str


class Tzip16Classification(BaseModel):
    kind: Literal["tzip-16"] = "tzip-16"
    metadata: MetadataDocument


class Tzip12Classification(BaseModel):
    kind: Literal["tzip-12"] = "tzip-12"
    metadata: MetadataDocument
    interface_claim: Optional[InterfaceClaim] = None
    logs: list[ClassificationLog] = []


ClassifiedMetadata = Annotated[
    Union[Tzip16Classification, Tzip12Classification], Field(discriminator="kind")
]
