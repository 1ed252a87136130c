"""
Place search data models.

Field names follow the service vocabulary (``metadata``, ``items``, ``name``,
``url``); aliases carry the Kakao Local wire names (``meta``, ``documents``,
``place_name``, ``place_url``). JSON written to clients and to the cache is
always produced by alias so cached blobs and upstream bodies share one shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResultMetadata(BaseModel):
    """Completeness of a result set, as reported by the upstream."""

    model_config = ConfigDict(populate_by_name=True)

    total_count: int
    pageable_count: int
    is_end: bool


class ResultItem(BaseModel):
    """A single place. Every field is passed through untouched."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = Field(..., alias="place_name")
    category_name: str
    category_group_code: str
    category_group_name: str
    phone: str
    address_name: str
    road_address_name: str
    x: str  # longitude
    y: str  # latitude
    url: str = Field(..., alias="place_url")
    distance: str


class SearchResult(BaseModel):
    """Full result set for one keyword; the unit of caching."""

    model_config = ConfigDict(populate_by_name=True)

    metadata: ResultMetadata = Field(..., alias="meta")
    items: List[ResultItem] = Field(..., alias="documents")

    def to_json(self) -> str:
        """Serialize using the wire field names."""
        return self.model_dump_json(by_alias=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_json(cls, payload: str | bytes) -> "SearchResult":
        """Parse a wire-format JSON document. Raises ``pydantic.ValidationError``.

        Validation is strict: numbers and booleans must arrive as JSON numbers
        and booleans, not strings or floats.
        """
        return cls.model_validate_json(payload, strict=True)


@dataclass(frozen=True)
class UpstreamResponse:
    """Raw upstream reply, kept intact so non-OK answers can be relayed."""

    status_code: int
    body: bytes
    content_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200
