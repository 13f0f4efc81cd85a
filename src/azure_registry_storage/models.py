"""Package metadata document stored once per package."""

from collections.abc import Mapping
from typing import Any, Dict, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .storage.exceptions import StorageMalformedError


class PackageMetadata(BaseModel):
    """The registry's per-package manifest.

    Only the fields this layer needs to precreate a document are declared;
    anything else the registry stores (readme, time, users, ...) is kept as
    extra data and written back unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    versions: Dict[str, Any] = Field(default_factory=dict)
    dist_tags: Dict[str, str] = Field(default_factory=dict, alias="dist-tags")
    dist_files: Dict[str, Any] = Field(default_factory=dict, alias="_distfiles")
    attachments: Dict[str, Any] = Field(default_factory=dict, alias="_attachments")
    uplinks: Dict[str, Any] = Field(default_factory=dict, alias="_uplinks")
    rev: str = Field(default="", alias="_rev")

    @classmethod
    def empty(cls, name: str) -> "PackageMetadata":
        return cls(name=name)

    @classmethod
    def coerce(cls, document: Union["PackageMetadata", Mapping[str, Any]]) -> "PackageMetadata":
        if isinstance(document, cls):
            return document
        try:
            return cls.model_validate(dict(document))
        except ValidationError as e:
            raise StorageMalformedError(f"Invalid package metadata: {e}", cause=e) from e

    @classmethod
    def from_json(cls, raw: bytes, key: str | None = None) -> "PackageMetadata":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise StorageMalformedError(f"Malformed package metadata at {key}", key=key, cause=e) from e

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
