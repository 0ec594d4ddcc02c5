"""
Feed API — Post Service (Business Logic)
==========================================

What:  List, fetch, create, update and delete posts.
Why:   Keeps the feed rules out of the HTTP layer so they can be tested with
       a plain session and BackgroundTasks object.
How:   Each operation is one linear flow: check the request's validation
       result, run one or two sequential queries, return a response model.
       Every failure is raised as a FeedApiError subclass; store failures are
       wrapped in DatabaseError.

Image lifecycle:
    A post's image file is deleted when the post's imageUrl changes or when
    the post is deleted. Deletion is scheduled on the request's BackgroundTasks
    and runs after the response is sent (see FileService.clear_image). It is
    never awaited and never rolls back the row change.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feed_api.config import settings
from feed_api.exceptions import DatabaseError, NotFoundError, ValidationError
from feed_api.models.post import Post
from feed_api.schemas.post import (
    CreatorResponse,
    MessageResponse,
    PostDetailResponse,
    PostForm,
    PostListResponse,
    PostResponse,
)
from feed_api.services.file_service import file_service, normalize_image_path

logger = logging.getLogger(__name__)


def to_post_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        title=post.title,
        content=post.content,
        image_url=post.image_url,
        creator=CreatorResponse(**post.creator),
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


def _store_error(action: str, e: SQLAlchemyError, **context) -> DatabaseError:
    """Wrap a SQLAlchemy failure, keeping a status code if the driver supplied one."""
    logger.error("Database error %s: %s", action, str(e), exc_info=True)
    status_code = getattr(getattr(e, "orig", None), "status_code", None)
    context["error_type"] = type(e).__name__
    return DatabaseError(
        message=f"Could not {action}. Please try again.",
        context=context,
        status_code=status_code if isinstance(status_code, int) else None,
    )


def _check_validation(form: PostForm) -> None:
    if form.errors:
        raise ValidationError(
            message="Validation failed, entered data is incorrect",
            context={"errors": form.errors},
        )


class PostService:
    """
    Business logic layer for post operations.

    Responsibilities:
        - list_posts():  offset pagination with a total count
        - get_post():    single post, 404 when absent
        - create_post(): store the uploaded image, persist the post
        - update_post(): replace fields, schedule deletion of a replaced image
        - delete_post(): schedule deletion of the image, delete the row
    """

    async def _fetch(self, db: AsyncSession, post_id: UUID) -> Post:
        try:
            result = await db.execute(select(Post).where(Post.id == post_id))
            post = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _store_error("fetch the post", e, post_id=str(post_id))

        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    async def list_posts(self, db: AsyncSession, page: int = 1) -> PostListResponse:
        """
        Return one page of posts, oldest first, and the total number of posts.

        Args:
            db:   Async database session
            page: 1-based page number; the page size is settings.posts_per_page

        Query plan:
            SELECT count(id) FROM posts
            SELECT ... FROM posts ORDER BY created_at LIMIT :per_page OFFSET :offset

        A page past the end yields an empty list, not an error.
        """
        per_page = settings.posts_per_page
        try:
            count_result = await db.execute(select(func.count(Post.id)))
            total_items = count_result.scalar() or 0

            result = await db.execute(
                select(Post)
                .order_by(Post.created_at.asc(), Post.id.asc())
                .offset((page - 1) * per_page)
                .limit(per_page)
            )
            posts = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise _store_error("retrieve posts", e, page=page)

        return PostListResponse(
            message="Fetched posts successfully",
            posts=[to_post_response(post) for post in posts],
            total_items=total_items,
        )

    async def get_post(self, db: AsyncSession, post_id: UUID) -> PostDetailResponse:
        """
        Raises:
            NotFoundError: Post with given ID does not exist (→ 404)
            DatabaseError: Query execution failed (→ 500)
        """
        post = await self._fetch(db, post_id)
        return PostDetailResponse(message="Post fetched", post=to_post_response(post))

    async def create_post(self, db: AsyncSession, form: PostForm) -> PostDetailResponse:
        """
        Create a post from a validated form with an uploaded image.

        Workflow:
            1. Reject invalid text fields (422)
            2. Reject a missing image (422 "No image provided")
            3. Validate and store the image file
            4. Insert the post with the fixed creator name

        If step 4 fails the stored file is removed again, so a failed create
        leaves nothing behind.
        """
        _check_validation(form)
        if form.image is None:
            raise ValidationError(message="No image provided", field="image")

        absolute_path, relative_path = await file_service.validate_and_store(
            filename=form.image.filename,
            content=form.image.content,
        )

        post = Post(
            title=form.title,
            content=form.content,
            image_url=normalize_image_path(relative_path),
            creator={"name": settings.post_creator_name},
        )
        try:
            db.add(post)
            await db.flush()
        except SQLAlchemyError as e:
            await file_service.cleanup_file(absolute_path)
            raise _store_error("create the post", e)

        logger.info("Post created: %s (image=%s)", post.id, post.image_url)
        return PostDetailResponse(message="Post created", post=to_post_response(post))

    async def _resolve_image_url(self, form: PostForm) -> Tuple[str, Optional[str]]:
        """
        Pick the image an update should point at.

        An uploaded file wins over an imageUrl sent in the body. A body value
        must name an existing stored image and is returned in its canonical
        stored form, so it compares equal to the post's current imageUrl when
        both name the same file.

        Returns: (image_url, absolute path of a newly stored upload or None)
        """
        if form.image is not None:
            absolute_path, relative_path = await file_service.validate_and_store(
                filename=form.image.filename,
                content=form.image.content,
            )
            return normalize_image_path(relative_path), absolute_path

        if not form.image_url:
            raise ValidationError(message="No file picked", field="image")

        image_url = file_service.canonical_image_url(form.image_url)
        if not file_service.image_exists(image_url):
            raise ValidationError(
                message="The picked image does not exist",
                field="image",
                context={"image_url": image_url},
            )
        return image_url, None

    async def update_post(
        self,
        db: AsyncSession,
        post_id: UUID,
        form: PostForm,
        background_tasks: BackgroundTasks,
    ) -> PostDetailResponse:
        """
        Replace title, content and image of an existing post.

        When the resolved imageUrl differs from the stored one, exactly one
        deletion of the previous image is scheduled; otherwise none.

        Raises:
            ValidationError: invalid fields or no image (→ 422)
            NotFoundError:   no such post (→ 404)
            DatabaseError:   store failure (→ 500)
        """
        _check_validation(form)
        image_url, stored_path = await self._resolve_image_url(form)

        try:
            post = await self._fetch(db, post_id)
        except (NotFoundError, DatabaseError):
            if stored_path:
                await file_service.cleanup_file(stored_path)
            raise

        previous_image_url = post.image_url
        post.title = form.title
        post.content = form.content
        post.image_url = image_url
        try:
            await db.flush()
        except SQLAlchemyError as e:
            if stored_path:
                await file_service.cleanup_file(stored_path)
            raise _store_error("update the post", e, post_id=str(post_id))

        if image_url != previous_image_url:
            background_tasks.add_task(file_service.clear_image, previous_image_url)

        logger.info("Post updated: %s", post.id)
        return PostDetailResponse(message="Post updated", post=to_post_response(post))

    async def delete_post(
        self,
        db: AsyncSession,
        post_id: Optional[UUID],
        background_tasks: BackgroundTasks,
    ) -> MessageResponse:
        """
        Delete a post and schedule deletion of its image.

        A missing post raises NotFoundError before anything is scheduled or
        changed.
        """
        if not post_id:
            raise NotFoundError(resource="post", message="No post found")

        post = await self._fetch(db, post_id)
        background_tasks.add_task(file_service.clear_image, post.image_url)

        try:
            await db.execute(delete(Post).where(Post.id == post_id))
            await db.flush()
        except SQLAlchemyError as e:
            raise _store_error("delete the post", e, post_id=str(post_id))

        logger.info("Post deleted: %s", post_id)
        return MessageResponse(message="Post deleted")


post_service = PostService()
