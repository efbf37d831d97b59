"""
Composition, gallery, like and comment endpoints.
"""

from typing import Literal

from fastapi import APIRouter, Query, status

from ...core.exceptions import AuthorizationError, NotFoundError
from ...infrastructure.monitoring.logging import get_logger
from ...infrastructure.monitoring.metrics import metrics
from ..deps import Compositions, CurrentUser, OptionalUser
from ..schemas import (
    CommentIn,
    CommentListResponse,
    CommentOut,
    CommentResponse,
    CompositionDetail,
    CompositionDetailResponse,
    CompositionIn,
    CompositionListResponse,
    CompositionOut,
    CompositionResponse,
    GalleryResponse,
    LikeResponse,
    MessageResponse,
)

logger = get_logger(__name__)

router = APIRouter()


def _fields(body: CompositionIn) -> dict:
    return {
        "title": body.title,
        "description": body.description,
        "equations": body.equations,
        "settings": body.settings.model_dump(mode="json", exclude_none=True),
        "is_public": body.is_public,
    }


@router.post("", response_model=CompositionResponse, status_code=status.HTTP_201_CREATED)
async def create_composition(body: CompositionIn, current_user: CurrentUser, repo: Compositions):
    """Create a new composition"""
    composition = await repo.create(current_user["id"], **_fields(body))
    metrics.record_request("create_composition", "success")
    logger.info("Composition created", composition_id=composition["id"], user_id=current_user["id"])
    return CompositionResponse(
        message="Composition created successfully", composition=CompositionOut(**composition)
    )


@router.get("/my", response_model=CompositionListResponse)
async def my_compositions(current_user: CurrentUser, repo: Compositions):
    """The caller's compositions, newest first"""
    rows = await repo.list_by_user(current_user["id"])
    return CompositionListResponse(compositions=rows)


@router.get("/public/gallery", response_model=GalleryResponse)
async def gallery(
    repo: Compositions,
    sort: Literal["recent", "popular", "trending"] = "recent",
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Public compositions for the gallery"""
    rows = await repo.gallery(sort=sort, limit=limit, offset=offset)
    metrics.record_request("gallery", "success")
    return GalleryResponse(compositions=rows)


@router.get("/{composition_id}", response_model=CompositionDetailResponse)
async def get_composition(composition_id: str, user: OptionalUser, repo: Compositions):
    """
    Get a composition by id.

    Visible when public or owned by the caller. Each successful read counts
    as a play.
    """
    viewer_id = user["id"] if user else None
    composition = await repo.get_visible(composition_id, viewer_id)
    if composition is None:
        raise NotFoundError("Composition not found or not accessible")

    await repo.increment_play_count(composition_id)
    metrics.record_request("get_composition", "success")
    return CompositionDetailResponse(composition=CompositionDetail(**composition))


@router.put("/{composition_id}", response_model=CompositionResponse)
async def update_composition(
    composition_id: str, body: CompositionIn, current_user: CurrentUser, repo: Compositions
):
    """Replace a composition owned by the caller"""
    owner_id = await repo.get_owner(composition_id)
    if owner_id is None:
        raise NotFoundError("Composition not found")
    if owner_id != current_user["id"]:
        raise AuthorizationError("Not authorized to edit this composition")

    composition = await repo.update(composition_id, current_user["id"], **_fields(body))
    if composition is None:
        raise NotFoundError("Composition not found")

    logger.info("Composition updated", composition_id=composition_id)
    return CompositionResponse(
        message="Composition updated successfully", composition=CompositionOut(**composition)
    )


@router.delete("/{composition_id}", response_model=MessageResponse)
async def delete_composition(composition_id: str, current_user: CurrentUser, repo: Compositions):
    """Delete a composition owned by the caller, with its likes and comments"""
    owner_id = await repo.get_owner(composition_id)
    if owner_id is None:
        raise NotFoundError("Composition not found")
    if owner_id != current_user["id"]:
        raise AuthorizationError("Not authorized to delete this composition")

    await repo.delete(composition_id, current_user["id"])
    logger.info("Composition deleted", composition_id=composition_id)
    return MessageResponse(message="Composition deleted successfully")


@router.post("/{composition_id}/like", response_model=LikeResponse)
async def toggle_like(composition_id: str, current_user: CurrentUser, repo: Compositions):
    """Like the composition, or unlike it if already liked"""
    if not await repo.is_visible(composition_id, current_user["id"]):
        raise NotFoundError("Composition not found")

    liked = await repo.toggle_like(composition_id, current_user["id"])
    metrics.record_request("like", "liked" if liked else "unliked")
    return LikeResponse(message="Liked" if liked else "Unliked", liked=liked)


@router.post(
    "/{composition_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    composition_id: str, body: CommentIn, current_user: CurrentUser, repo: Compositions
):
    """Comment on a composition"""
    if not await repo.is_visible(composition_id, current_user["id"]):
        raise NotFoundError("Composition not found")

    comment = await repo.add_comment(composition_id, current_user["id"], body.content)
    metrics.record_request("add_comment", "success")
    return CommentResponse(message="Comment added", comment=CommentOut(**comment))


@router.get("/{composition_id}/comments", response_model=CommentListResponse)
async def list_comments(composition_id: str, user: OptionalUser, repo: Compositions):
    """Comments on a composition, newest first"""
    if not await repo.is_visible(composition_id, user["id"] if user else None):
        raise NotFoundError("Composition not found")

    return CommentListResponse(comments=await repo.list_comments(composition_id))
