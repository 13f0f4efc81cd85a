"""Local index document and the provider contract used to persist it."""

from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..storage.exceptions import StorageMalformedError


class LocalIndex(BaseModel):
    """Registry-wide list of package names plus the registry secret."""

    list: List[str] = Field(default_factory=list)
    secret: str = ""

    @field_validator("list")
    @classmethod
    def _drop_duplicates(cls, names: List[str]) -> List[str]:
        return [name for name in dict.fromkeys(names)]

    @classmethod
    def from_json(cls, raw: bytes | str, key: str | None = None) -> "LocalIndex":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise StorageMalformedError(f"Malformed local index at {key}", key=key, cause=e) from e

    def to_json(self) -> str:
        return self.model_dump_json()


class LocalIndexProvider(ABC):
    """Reads and writes the local index as one whole document."""

    @abstractmethod
    async def get_local_index(self) -> Optional[LocalIndex]:
        """Return the stored index, or None if it does not exist yet.

        Any other failure is raised to the caller.
        """

    @abstractmethod
    async def save_local_index(self, local_index: LocalIndex) -> None:
        """Persist the whole index, replacing any previous copy."""

    async def close(self) -> None:
        """Release resources owned by the provider."""
