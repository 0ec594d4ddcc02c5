"""
Feed API — Post Route Handlers
================================

What:  HTTP surface of the post resource under /feed.
How:   Extracts path/query/form data, delegates to PostService, returns JSON.

Routes:
    GET    /feed/posts?page=N        → 200 page of posts + totalItems
    GET    /feed/posts/{post_id}     → 200 single post
    POST   /feed/posts               → 201 created post (multipart, image required)
    PUT    /feed/posts/{post_id}     → 200 updated post (multipart, image optional)
    DELETE /feed/posts/{post_id}     → 200 {"message": "Post deleted"}

Multipart body (create/update):
    title, content: text fields, validated by validate_post_input()
    image:          either an uploaded file, or on update the imageUrl of an
                    existing stored image sent as plain text
"""

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from feed_api.database import get_db_session
from feed_api.schemas.post import (
    ErrorResponse,
    ImageUpload,
    MessageResponse,
    PostDetailResponse,
    PostForm,
    PostListResponse,
    validate_post_input,
)
from feed_api.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feed", tags=["Posts"])

# The form is read by hand (see read_post_form) because `image` may be a file
# or a string, so the request body has to be described for OpenAPI here.
_POST_FORM_OPENAPI = {
    "requestBody": {
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "required": ["title", "content"],
                    "properties": {
                        "title": {"type": "string", "minLength": 5},
                        "content": {"type": "string", "minLength": 5},
                        "image": {
                            "type": "string",
                            "format": "binary",
                            "description": "PNG/JPEG file, or an existing imageUrl on update",
                        },
                    },
                }
            }
        },
        "required": True,
    }
}


def _text_field(value) -> str | None:
    return value if isinstance(value, str) else None


async def read_post_form(request: Request) -> PostForm:
    """
    Parse a create/update body into a PostForm with its validation result.

    What:    Reads the multipart (or urlencoded) form once, loads an uploaded
             image into memory and runs the text-field validation.
    Why:     The service receives the validation result instead of raising
             here, so "validation failed" and "no image" are checked in the
             order the feed defines.
    """
    form = await request.form()
    title = _text_field(form.get("title"))
    content = _text_field(form.get("content"))

    image = None
    image_url = None
    image_field = form.get("image")
    if isinstance(image_field, UploadFile):
        # Browsers send an empty file part when nothing was picked
        if image_field.filename:
            image = ImageUpload(
                filename=image_field.filename,
                content=await image_field.read(),
            )
        await image_field.close()
    elif isinstance(image_field, str) and image_field.strip():
        image_url = image_field.strip()

    clean, errors = validate_post_input(title, content)
    if errors:
        logger.debug("Post form failed validation: %s", errors)

    return PostForm(
        title=clean.title if clean else (title or ""),
        content=clean.content if clean else (content or ""),
        image=image,
        image_url=image_url,
        errors=errors,
    )


@router.get(
    "/posts",
    response_model=PostListResponse,
    responses={
        422: {"description": "Invalid page number", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List posts, one page at a time",
)
async def list_posts(
    page: int = Query(default=1, ge=1, description="1-based page number"),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    """
    Example:
        GET /feed/posts          → first page
        GET /feed/posts?page=3   → posts 5 and 6 (with the default page size 2)
    """
    return await post_service.list_posts(db=db, page=page)


@router.get(
    "/posts/{post_id}",
    response_model=PostDetailResponse,
    responses={
        404: {"description": "Post not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a single post by ID",
)
async def get_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> PostDetailResponse:
    return await post_service.get_post(db=db, post_id=post_id)


@router.post(
    "/posts",
    status_code=201,
    response_model=PostDetailResponse,
    responses={
        422: {"description": "Invalid fields or missing image", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create a post with an image",
    openapi_extra=_POST_FORM_OPENAPI,
)
async def create_post(
    form: PostForm = Depends(read_post_form),
    db: AsyncSession = Depends(get_db_session),
) -> PostDetailResponse:
    logger.info(
        "Received create request: title=%r, image=%s",
        form.title,
        form.image.filename if form.image else None,
    )
    return await post_service.create_post(db=db, form=form)


@router.put(
    "/posts/{post_id}",
    response_model=PostDetailResponse,
    responses={
        404: {"description": "Post not found", "model": ErrorResponse},
        422: {"description": "Invalid fields or no image", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Update a post",
    openapi_extra=_POST_FORM_OPENAPI,
)
async def update_post(
    post_id: UUID,
    background_tasks: BackgroundTasks,
    form: PostForm = Depends(read_post_form),
    db: AsyncSession = Depends(get_db_session),
) -> PostDetailResponse:
    """
    A replaced image is deleted by a background task after the response is
    sent; its failure is logged and does not change this response.
    """
    return await post_service.update_post(
        db=db,
        post_id=post_id,
        form=form,
        background_tasks=background_tasks,
    )


@router.delete(
    "/posts/{post_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Post not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Delete a post and its image",
)
async def delete_post(
    post_id: UUID,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await post_service.delete_post(
        db=db,
        post_id=post_id,
        background_tasks=background_tasks,
    )
