# backend/routeshare/notifications/notices.py

"""
ユーザー向けの一時的な通知（トースト相当）を送るインターフェースと最小実装。

通知レコード（notifications テーブル）とは別物で、
「通知の作成に失敗しました」のようなノンブロッキングなお知らせを扱う。

- Notice を受け取る send() インターフェース
- ログ出力のみ行う LoggingNoticeSender
- 複数 Sender にファンアウトする CompositeNoticeSender
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notice(BaseModel):
    """
    一時的なお知らせ 1 件分。

    body には内部のエラー詳細（SQL やトークン）を含めないこと。
    """

    level: NoticeLevel = Field(..., description="お知らせの重要度")
    title: str = Field("", description="短いタイトル")
    body: str = Field(..., description="本文。プレーンテキスト想定")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="生成時刻（UTC）",
    )


class NoticeSender(Protocol):
    """
    お知らせ送信の最小インターフェース。

    実装例:
    - LoggingNoticeSender: ログ出力のみ
    - クライアントへのプッシュやトースト表示（呼び出し側で実装）
    """

    def send(self, notice: Notice) -> None:  # pragma: no cover - Protocol
        ...


class LoggingNoticeSender:
    """
    Notice を Python の logger に記録するだけの Sender。
    """

    def __init__(self, logger_: logging.Logger | None = None) -> None:
        self._logger = logger_ or logger

    def send(self, notice: Notice) -> None:
        """
        お知らせを重要度に応じたログレベルで出力する。
        """
        prefix = f"[notice][{notice.level.value}] "
        if notice.title:
            prefix += f"{notice.title} "
        text = prefix + notice.body

        if notice.level == NoticeLevel.ERROR:
            self._logger.error(text)
        elif notice.level == NoticeLevel.WARNING:
            self._logger.warning(text)
        else:
            self._logger.info(text)


class CompositeNoticeSender:
    """
    複数の NoticeSender にお知らせをファンアウトする。

    お知らせは副作用なので、1 つの Sender が失敗しても残りには送り、例外は外に出さない。
    """

    def __init__(self, senders: Iterable[NoticeSender]) -> None:
        self._senders: List[NoticeSender] = list(senders)

    def send(self, notice: Notice) -> None:
        for sender in self._senders:
            try:
                sender.send(notice)
            except Exception:  # noqa: BLE001 - お知らせは本処理を止めない
                logger.exception("Notice sender failed. Continuing with others.")
