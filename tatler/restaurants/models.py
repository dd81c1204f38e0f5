from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ── Request bodies ──────────────────────────────────────────────────────
# Required-field and range checks happen in the service so callers get the
# documented 400 messages instead of schema errors.


class AddressIn(BaseModel):
    building: str | None = None
    street: str | None = None
    zipcode: str | None = None
    coord: list[Any] | None = Field(
        default=None, description="[longitude, latitude]; bad values become 0.0"
    )


class RestaurantCreate(BaseModel):
    restaurant_id: str | None = Field(
        default=None, description="Generated when omitted"
    )
    name: str | None = None
    borough: str | None = None
    cuisine: str | None = None
    address: AddressIn | None = None
    phone: str | None = None
    website: str | None = None
    price_range: str | None = Field(default=None, description='e.g. "$", "$$", "$$$"')


class RestaurantUpdate(BaseModel):
    """Partial update. Identifier fields are not part of the schema and are dropped."""

    name: str | None = None
    borough: str | None = None
    cuisine: str | None = None
    address: AddressIn | None = None
    phone: str | None = None
    website: str | None = None
    price_range: str | None = None


class CommentCreate(BaseModel):
    comment: str | None = None
    user_id: str | None = None
    rating: int | None = None


class RatingCreate(BaseModel):
    score: float | None = None
    grade: str | None = None


# ── Response models ─────────────────────────────────────────────────────


class AddressOut(BaseModel):
    building: str = ""
    street: str = ""
    zipcode: str = ""
    coord: list[float] = Field(default_factory=list)


class GradeOut(BaseModel):
    date: datetime
    grade: str | None = None
    score: int | float


class CommentOut(BaseModel):
    id: str | None = None
    date: datetime
    comment: str
    user_id: str = "anonymous"
    rating: int | None = None


class RestaurantOut(BaseModel):
    id: str
    restaurant_id: str
    name: str
    cuisine: str
    borough: str = ""
    phone: str = ""
    website: str = ""
    price_range: str = "$$"
    address: AddressOut = Field(default_factory=AddressOut)
    grades: list[GradeOut] = Field(default_factory=list)
    comments: list[CommentOut] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    score: float | None = Field(default=None, description="Text search relevance")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> RestaurantOut:
        data = {k: v for k, v in document.items() if k != "_id"}
        data["id"] = str(document["_id"])
        return cls.model_validate(data)


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_documents: int
    limit: int


class RestaurantResponse(BaseModel):
    success: bool = True
    message: str | None = None
    data: RestaurantOut


class RestaurantListResponse(BaseModel):
    success: bool = True
    data: list[RestaurantOut]
    pagination: Pagination


class SearchResponse(BaseModel):
    success: bool = True
    count: int
    data: list[RestaurantOut]


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    success: bool = True
    status: str = "ok"
    message: str = "API is working"
    version: str
    timestamp: datetime
