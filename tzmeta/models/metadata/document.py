from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class License(BaseModel):
    name: str
    details: Optional[str] = None


class Source(BaseModel):
    tools: list[str] = []
    location: Optional[str] = None


class MichelsonStorageView(_Camel):
    """Off-chain view run against the contract storage.

    Types and code stay in their Micheline JSON form.
    """

    parameter: Optional[Any] = None
    return_type: Any = Field(alias="returnType")
    code: Any
    annotations: list[dict[str, Any]] = []
    version: Optional[str] = None


class RestApiQuery(_Camel):
    specification_uri: str = Field(alias="specificationUri")
    base_uri: Optional[str] = Field(default=None, alias="baseUri")
    path: str
    method: str = "GET"


class ViewImplementation(_Camel):
    michelson_storage_view: Optional[MichelsonStorageView] = Field(
        default=None, alias="michelsonStorageView"
    )
    rest_api_query: Optional[RestApiQuery] = Field(default=None, alias="restApiQuery")


class View(BaseModel):
    name: str
    description: Optional[str] = None
    pure: bool = False
    implementations: list[ViewImplementation] = []


class MetadataDocument(BaseModel):
    """TZIP-16 metadata content.

    Top-level fields the standard does not define are kept as extras and
    exposed through :attr:`unknown`.
    """

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    license: Optional[License] = None
    authors: list[str] = []
    homepage: Optional[str] = None
    source: Optional[Source] = None
    interfaces: list[str] = []
    errors: list[dict[str, Any]] = []
    views: list[View] = []

    @property
    def unknown(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
