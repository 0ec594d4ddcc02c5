"""
Feed API — Post SQLAlchemy Model
==================================

What:  ORM model representing the `posts` table.
Why:   Maps Python objects to database rows for type-safe database operations.
How:   Inherits from DeclarativeBase; Alembic reads this for migrations.
Who:   Used by PostService for CRUD operations and by Alembic for schema management.

Table Design:
    - UUID primary key, generated in Python so SQLite and PostgreSQL behave alike
    - image_url: relative path from the storage root, always forward slashes
    - creator: JSON document ({"name": ...}) until posts belong to real users
    - created_at / updated_at: UTC, maintained on insert and on every update

    Index on created_at:
        Listing pages through posts in creation order with OFFSET/LIMIT.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from feed_api.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Post(Base):
    """
    A feed post with one attached image.

    Lifecycle:
        1. Created by POST /feed/posts (an uploaded image is required)
        2. Title, content and image replaced by PUT /feed/posts/{id}
        3. Removed by DELETE /feed/posts/{id}, together with its image file
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Format: images/YYYY/MM/DD/<uuid>.<ext>
    image_url: Mapped[str] = mapped_column(String(512), nullable=False)

    creator: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("idx_posts_created_at", created_at),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title='{self.title}', image_url='{self.image_url}')>"
