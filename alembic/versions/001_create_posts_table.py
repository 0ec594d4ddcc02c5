"""Create posts table

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates the `posts` table holding feed posts and their image paths.
Rollback: downgrade() drops the table (all posts are lost, image files stay).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "image_url",
            sa.String(512),
            nullable=False,
            comment="Image path relative to the storage root, forward slashes",
        ),
        sa.Column(
            "creator",
            sa.JSON(),
            nullable=False,
            comment='Creator document, e.g. {"name": "Sparkz"}',
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # Listing pages through posts in creation order
    op.create_index("idx_posts_created_at", "posts", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_posts_created_at", table_name="posts")
    op.drop_table("posts")
