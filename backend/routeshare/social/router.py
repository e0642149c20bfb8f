# backend/routeshare/social/router.py

"""
ソーシャル操作用の FastAPI ルーター定義。

- POST   /social/follow
- DELETE /social/follow
- POST   /social/likes
- DELETE /social/likes
- POST   /social/comments
"""

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status

from routeshare.notifications.factory import get_notification_service
from routeshare.remote.client import RemoteTableClient

from .schemas import CommentRequest, FollowRequest, LikeRequest, SocialActionResult
from .service import SocialActionError, SocialService, SocialValidationError

router = APIRouter(prefix="/social", tags=["social"])


@lru_cache()
def get_social_service() -> SocialService:
    """
    SocialService のシングルトンインスタンスを取得する。

    通知は get_notification_service() と同じインスタンスを共有する。
    """
    return SocialService(
        client=RemoteTableClient(),
        notifications=get_notification_service(),
    )


def _to_http_error(exc: SocialActionError) -> HTTPException:
    if isinstance(exc, SocialValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(exc),
    )


@router.post(
    "/follow",
    response_model=SocialActionResult,
    summary="ユーザーをフォローする（follow 通知つき）",
)
def follow(
    body: FollowRequest,
    service: SocialService = Depends(get_social_service),
) -> SocialActionResult:
    try:
        return service.follow_user(body.follower_id, body.following_id)
    except SocialActionError as exc:
        raise _to_http_error(exc) from exc


@router.delete(
    "/follow",
    response_model=SocialActionResult,
    summary="フォローを解除する",
)
def unfollow(
    body: FollowRequest,
    service: SocialService = Depends(get_social_service),
) -> SocialActionResult:
    try:
        return service.unfollow_user(body.follower_id, body.following_id)
    except SocialActionError as exc:
        raise _to_http_error(exc) from exc


@router.post(
    "/likes",
    response_model=SocialActionResult,
    summary="ブックマークにいいねする（like 通知つき）",
)
def like(
    body: LikeRequest,
    service: SocialService = Depends(get_social_service),
) -> SocialActionResult:
    try:
        return service.like_bookmark(body.user_id, body.bookmark_id, owner_id=body.owner_id)
    except SocialActionError as exc:
        raise _to_http_error(exc) from exc


@router.delete(
    "/likes",
    response_model=SocialActionResult,
    summary="いいねを取り消す",
)
def unlike(
    body: LikeRequest,
    service: SocialService = Depends(get_social_service),
) -> SocialActionResult:
    try:
        return service.unlike_bookmark(body.user_id, body.bookmark_id)
    except SocialActionError as exc:
        raise _to_http_error(exc) from exc


@router.post(
    "/comments",
    response_model=SocialActionResult,
    summary="コメントを投稿する（comment / mention 通知つき）",
)
def comment(
    body: CommentRequest,
    service: SocialService = Depends(get_social_service),
) -> SocialActionResult:
    try:
        return service.add_comment(
            body.author_id,
            body.bookmark_id,
            body.content,
            owner_id=body.owner_id,
        )
    except SocialActionError as exc:
        raise _to_http_error(exc) from exc
