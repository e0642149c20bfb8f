# backend/routeshare/notifications/config.py

"""
通知ポリシーの設定値読み出しモジュール。

- 種別ごとのレート制限ウィンドウ（同じ送信者から同じ受信者への同種通知の最小間隔）
- 一覧取得の件数上限

グローバル定数ではなく NotificationSettings として NotificationService に注入する。
テストではウィンドウを差し替えるだけで時刻を操作せずに挙動を確認できる。
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Mapping, Optional

from routeshare.utils.config import get_env_int

from .schemas import NotificationEntityType

DEFAULT_RATE_LIMITS: Dict[NotificationEntityType, timedelta] = {
    NotificationEntityType.FOLLOW: timedelta(hours=24),
    NotificationEntityType.LIKE: timedelta(minutes=1),
    NotificationEntityType.COMMENT: timedelta(minutes=1),
}

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class NotificationSettings:
    """
    通知ポリシーの設定値のまとまり。

    rate_limits に含まれない種別（デフォルトでは mention）はレート制限しない。
    """

    rate_limits: Mapping[NotificationEntityType, timedelta] = field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS)
    )
    page_size: int = DEFAULT_PAGE_SIZE

    def window_for(self, entity_type: NotificationEntityType) -> Optional[timedelta]:
        """種別に対応するウィンドウを返す。制限しない種別なら None。"""
        window = self.rate_limits.get(entity_type)
        if window is None or window <= timedelta(0):
            return None
        return window


def _rate_limit_env_name(entity_type: NotificationEntityType) -> str:
    return f"NOTIFICATION_RATE_LIMIT_{entity_type.value.upper()}_SECONDS"


def get_notification_settings() -> NotificationSettings:
    """
    NotificationSettings を環境変数から構築して返す。

    任意:
      - NOTIFICATION_RATE_LIMIT_FOLLOW_SECONDS  (デフォルト 86400)
      - NOTIFICATION_RATE_LIMIT_LIKE_SECONDS    (デフォルト 60)
      - NOTIFICATION_RATE_LIMIT_COMMENT_SECONDS (デフォルト 60)
      - NOTIFICATION_RATE_LIMIT_MENTION_SECONDS (デフォルト 0 = 制限なし)
      - NOTIFICATION_PAGE_SIZE                  (デフォルト 50)

    0 以下を指定した種別はレート制限の対象から外す。
    """
    rate_limits: Dict[NotificationEntityType, timedelta] = {}
    for entity_type in NotificationEntityType:
        default_window = DEFAULT_RATE_LIMITS.get(entity_type, timedelta(0))
        seconds = get_env_int(
            _rate_limit_env_name(entity_type),
            default=int(default_window.total_seconds()),
        )
        if seconds > 0:
            rate_limits[entity_type] = timedelta(seconds=seconds)

    page_size = get_env_int("NOTIFICATION_PAGE_SIZE", default=DEFAULT_PAGE_SIZE)
    if page_size <= 0:
        raise RuntimeError(f"NOTIFICATION_PAGE_SIZE must be positive: {page_size}")

    return NotificationSettings(rate_limits=rate_limits, page_size=page_size)
