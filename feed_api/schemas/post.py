"""
Feed API — Pydantic Request/Response Schemas
==============================================

What:  Pydantic models defining the API contract of the feed.
Why:   Input validation, serialization, and OpenAPI doc generation.
How:   Response models serialize with camelCase aliases (imageUrl, createdAt,
       totalItems) which is what feed clients read. Request data arrives as
       multipart form fields and is checked by validate_post_input().

Design Decision:
    Schemas are separate from SQLAlchemy models so the JSON field names and
    the database column names can evolve independently.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CreatorResponse(BaseModel):
    name: str = Field(description="Display name of the post creator")


class PostResponse(BaseModel):
    """
    What:  Full representation of a post.
    Who:   Embedded in every post-returning endpoint.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID = Field(description="Unique post identifier (UUID)")
    title: str = Field(description="Post title")
    content: str = Field(description="Post body")
    image_url: str = Field(
        alias="imageUrl",
        description="Path of the post image relative to the storage root (served under /images)",
    )
    creator: CreatorResponse = Field(description="Who created the post")
    created_at: datetime = Field(alias="createdAt", description="Creation timestamp (UTC)")
    updated_at: datetime = Field(alias="updatedAt", description="Last update timestamp (UTC)")


class PostListResponse(BaseModel):
    """
    What:  One page of posts plus the total number of posts.
    Who:   Returned by GET /feed/posts.

    totalItems is the count over the whole table and does not depend on page,
    so clients can compute the number of pages themselves.
    """
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(default="Fetched posts successfully")
    posts: List[PostResponse] = Field(description="Posts on the requested page")
    total_items: int = Field(alias="totalItems", description="Total number of posts")


class PostDetailResponse(BaseModel):
    """Envelope for endpoints returning a single post (get, create, update)."""
    message: str = Field(description="Human-readable success message")
    post: PostResponse


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable success message")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PostInput(BaseModel):
    """
    Validation rules for the text fields of a post.

    Both fields are trimmed before the length check, so "   abc   " is too short.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=5, max_length=255)
    content: str = Field(min_length=5)


class ImageUpload(BaseModel):
    """An uploaded image file, already read into memory."""
    filename: str
    content: bytes


class PostForm(BaseModel):
    """
    Everything a create/update request carried, plus its validation result.

    What:    Built once per request by the posts router from the multipart body.
    Fields:
        title / content: trimmed text values (raw values if validation failed)
        image:           the uploaded file under the `image` field, if any
        image_url:       the `image` field when it was sent as plain text
                         (an update keeping or pointing at an existing image)
        errors:          validation failures; empty means the input is valid
    """
    title: str = ""
    content: str = ""
    image: Optional[ImageUpload] = None
    image_url: Optional[str] = None
    errors: List[Dict[str, str]] = Field(default_factory=list)


def validate_post_input(
    title: Optional[str], content: Optional[str]
) -> Tuple[Optional[PostInput], List[Dict[str, str]]]:
    """
    Check title and content, collecting every failure instead of stopping at the first.

    Returns:
        (PostInput, []) when the input is valid, (None, errors) otherwise.
        Each error is {"field": ..., "message": ...}.
    """
    try:
        return PostInput(title=title or "", content=content or ""), []
    except PydanticValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
            }
            for err in e.errors()
        ]
        return None, errors


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "Could not find the post",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Image storage: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
