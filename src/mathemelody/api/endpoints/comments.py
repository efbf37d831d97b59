"""
Comment endpoints that are not nested under a composition.
"""

from fastapi import APIRouter

from ...core.exceptions import AuthorizationError, NotFoundError
from ...infrastructure.monitoring.logging import get_logger
from ..deps import Compositions, CurrentUser
from ..schemas import MessageResponse

logger = get_logger(__name__)

router = APIRouter()


@router.delete("/{comment_id}", response_model=MessageResponse)
async def delete_comment(comment_id: str, current_user: CurrentUser, repo: Compositions):
    """Delete a comment written by the caller"""
    owner_id = await repo.get_comment_owner(comment_id)
    if owner_id is None:
        raise NotFoundError("Comment not found")
    if owner_id != current_user["id"]:
        raise AuthorizationError("Not authorized to delete this comment")

    await repo.delete_comment(comment_id, current_user["id"])
    logger.info("Comment deleted", comment_id=comment_id)
    return MessageResponse(message="Comment deleted successfully")
