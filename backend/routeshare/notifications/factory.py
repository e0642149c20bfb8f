# backend/routeshare/notifications/factory.py

"""
通知サービスの簡易ファクトリ。

- RemoteTableClient と環境変数由来の NotificationSettings を組み合わせる
- 失敗時のお知らせは LoggingNoticeSender のみを登録した CompositeNoticeSender に送る
"""

from __future__ import annotations

from typing import Optional

from routeshare.remote.client import RemoteTableClient

from .config import get_notification_settings
from .notices import CompositeNoticeSender, LoggingNoticeSender
from .service import NotificationService

_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    """
    アプリ全体で共有する NotificationService を返す。

    初回呼び出し時にのみ生成し、それ以降は同じインスタンスを返す。
    """
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService(
            client=RemoteTableClient(),
            settings=get_notification_settings(),
            notices=CompositeNoticeSender([LoggingNoticeSender()]),
        )
    return _notification_service


def reset_state() -> None:
    """
    テスト用に NotificationService のシングルトン状態をリセットする。
    """
    global _notification_service
    _notification_service = None


__all__ = [
    "get_notification_service",
    "reset_state",
]
