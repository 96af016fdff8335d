"""
Comment Repository

Repository for request comments (append-only table).
"""

from secportal_api.tracking.db.pool import DomainDBPool
from secportal_api.tracking.models import Comment


class CommentRepository:
    """Comment repository (append-only)."""

    def __init__(self, pool: DomainDBPool):
        self.pool = pool

    async def create(self, comment: Comment) -> None:
        """Insert a comment; the request must already exist (foreign key)."""
        await self.pool.execute(
            """
            INSERT INTO request_comments (id, request_id, user_id, user_name, message, is_internal, created_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            """,
            comment.id,
            comment.request_id,
            comment.author_id,
            comment.author_name,
            comment.message,
            comment.is_internal,
            comment.created_at,
        )
