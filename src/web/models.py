"""Request bodies and the response envelope of the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from core.types import CollectionLookup


class PathRequest(BaseModel):
    path: str


class ValueRequest(BaseModel):
    value: str


class CollectionCreateRequest(BaseModel):
    name: str


class CollectionDeleteRequest(BaseModel):
    value: str
    by: CollectionLookup | None = None


class TransferRequest(BaseModel):
    to: str


class ApiResponse(BaseModel):
    """Uniform ``{success, data, meta}`` body; failures carry ``meta.error``."""

    success: bool
    data: Any = None
    meta: dict[str, Any] | None = None

    @classmethod
    def ok(cls, data: Any, meta: dict[str, Any] | None = None) -> ApiResponse:
        return cls(success=True, data=data, meta=meta)

    @classmethod
    def fail(cls, message: str, **meta: Any) -> ApiResponse:
        return cls(success=False, data=None, meta={"error": message, **meta})
