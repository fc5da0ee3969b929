"""FastAPI dependencies for injection."""
from fastapi import Header

from core.config import get_settings
from core.retention_policy import get_default_retention_policy
from db.session import get_async_session


async def get_author_id(
    x_author_id: str = Header(..., min_length=1, max_length=255),
) -> str:
    """
    Identity of the acting author.

    Authentication happens upstream of this API; the id is opaque here and is
    recorded on versions without being resolved.
    """
    return x_author_id


__all__ = [
    "get_async_session",
    "get_author_id",
    "get_default_retention_policy",
    "get_settings",
]
