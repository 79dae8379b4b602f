"""Invalidation request models and the dispatcher contract.

The wire shapes follow the CloudFront ``CreateInvalidation`` API::

    {
        "DistributionId": "E123...",
        "InvalidationBatch": {
            "Paths": {"Quantity": 2, "Items": ["/a", "/b"]},
            "CallerReference": "..."
        }
    }
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cf_cache_controller.errors import InvalidationError

WILDCARD_PATH = "/*"


def _new_caller_reference() -> str:
    return uuid4().hex


def _unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def normalize_paths(paths: Iterable[str]) -> list[str]:
    """Trim, prefix with ``/`` and de-duplicate, keeping first-seen order."""
    normalized = []
    for raw in paths:
        path = raw.strip()
        if not path:
            continue
        if not path.startswith("/"):
            path = "/" + path
        normalized.append(path)
    return _unique(normalized)


class InvalidationPaths(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: list[str] = Field(default_factory=list, alias="Items")

    @field_validator("items", mode="before")
    @classmethod
    def _ensure_list(cls, v: Any) -> Any:
        if v is None:
            return []
        return v

    @field_validator("items")
    @classmethod
    def _dedupe(cls, v: list[str]) -> list[str]:
        return _unique(v)

    @property
    def quantity(self) -> int:
        return len(self.items)


class InvalidationBatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    paths: InvalidationPaths = Field(default_factory=InvalidationPaths, alias="Paths")
    caller_reference: str = Field(default_factory=_new_caller_reference, alias="CallerReference")

    @classmethod
    def from_paths(cls, paths: Iterable[str]) -> "InvalidationBatch":
        return cls(paths=InvalidationPaths(items=list(paths)))

    @classmethod
    def from_query(cls, query: Mapping[str, Any] | "InvalidationBatch" | None) -> "InvalidationBatch":
        """Parse a loosely shaped ``{"Paths": {"Items": [...]}}`` payload.

        Missing or empty keys give an empty batch. Raises
        ``InvalidationError`` when the items are not strings.
        """
        if isinstance(query, InvalidationBatch):
            return query
        if not query or not isinstance(query, Mapping):
            return cls()
        paths = query.get("Paths")
        if not isinstance(paths, Mapping):
            paths = {}
        data: dict[str, Any] = {"Paths": {"Items": paths.get("Items") or []}}
        if query.get("CallerReference"):
            data["CallerReference"] = query["CallerReference"]
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise InvalidationError(f"Invalid invalidation batch: {exc}") from exc

    @property
    def items(self) -> list[str]:
        return self.paths.items

    def is_empty(self) -> bool:
        return not self.paths.items

    def has_wildcard(self) -> bool:
        return WILDCARD_PATH in self.paths.items

    def merged(self, paths: Iterable[str]) -> "InvalidationBatch":
        """Return a new batch holding the union of both path sets."""
        return InvalidationBatch.from_paths([*self.paths.items, *paths])

    def to_wire(self) -> dict[str, Any]:
        return {
            "Paths": {"Quantity": self.paths.quantity, "Items": list(self.paths.items)},
            "CallerReference": self.caller_reference,
        }


class InvalidationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    distribution_id: str = Field(alias="DistributionId", min_length=1)
    invalidation_batch: InvalidationBatch = Field(alias="InvalidationBatch")

    def to_wire(self) -> dict[str, Any]:
        return {
            "DistributionId": self.distribution_id,
            "InvalidationBatch": self.invalidation_batch.to_wire(),
        }


@dataclass(frozen=True)
class DispatchResult:
    """Raw outcome of a CloudFront call, passed back uninterpreted."""

    success: bool
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def invalidation_id(self) -> str | None:
        invalidation = self.payload.get("Invalidation")
        if isinstance(invalidation, Mapping):
            value = invalidation.get("Id")
            return str(value) if value else None
        return None


class InvalidationDispatcher(Protocol):
    def get_distribution_id(self) -> str | None: ...

    def create_invalidation(self, request: InvalidationRequest) -> DispatchResult: ...
