# backend/routeshare/notifications/router.py

"""
通知用の FastAPI ルーター定義。

- POST   /notifications
- GET    /notifications?recipient_id=...
- POST   /notifications/read-all?recipient_id=...
- POST   /notifications/{notification_id}/read
- DELETE /notifications/{notification_id}
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .factory import get_notification_service
from .labels import to_list_item
from .schemas import (
    DeleteNotificationResponse,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationResult,
)
from .service import (
    NotificationError,
    NotificationNotFoundError,
    NotificationService,
    NotificationValidationError,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _to_http_error(exc: NotificationError) -> HTTPException:
    """
    通知サービスの例外を HTTP エラーに変換する。

    リモート側のエラー詳細はログにのみ残し、レスポンスには含めない。
    """
    if isinstance(exc, NotificationValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotificationNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Notification backend request failed.",
    )


@router.post(
    "",
    response_model=NotificationResult,
    summary="通知の作成（自己通知の抑制・レート制限つき）",
)
def create_notification(
    body: NotificationCreate,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResult:
    """
    通知を作成する。抑制された場合も 200 で status=suppressed を返す。
    """
    try:
        return service.create_notification(body)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="受信者の通知一覧（新しい順、最大 50 件）",
)
def list_notifications(
    recipient_id: str = Query(..., min_length=1),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    try:
        notifications = service.list_notifications(recipient_id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc

    now = datetime.now(timezone.utc)
    items = [to_list_item(notification, now) for notification in notifications]
    return NotificationListResponse(items=items, count=len(items))


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="受信者の未読通知をすべて既読にする",
)
def mark_all_notifications_read(
    recipient_id: str = Query(..., min_length=1),
    service: NotificationService = Depends(get_notification_service),
) -> MarkAllReadResponse:
    try:
        updated_count = service.mark_all_as_read(recipient_id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc

    return MarkAllReadResponse(recipient_id=recipient_id, updated_count=updated_count)


@router.post(
    "/{notification_id}/read",
    response_model=MarkReadResponse,
    summary="通知を既読にする（冪等）",
)
def mark_notification_read(
    notification_id: int,
    require_found: bool = Query(False),
    service: NotificationService = Depends(get_notification_service),
) -> MarkReadResponse:
    """
    通知を既読にする。require_found=true の場合のみ、存在しない通知を 404 にする。
    """
    try:
        updated = service.mark_as_read(notification_id, require_found=require_found)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc

    return MarkReadResponse(id=notification_id, updated=updated)


@router.delete(
    "/{notification_id}",
    response_model=DeleteNotificationResponse,
    summary="通知の削除（存在しなくても成功）",
)
def delete_notification(
    notification_id: int,
    service: NotificationService = Depends(get_notification_service),
) -> DeleteNotificationResponse:
    try:
        deleted = service.delete_notification(notification_id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc

    return DeleteNotificationResponse(id=notification_id, deleted=deleted)
