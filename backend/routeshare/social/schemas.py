# backend/routeshare/social/schemas.py

"""
ソーシャル操作の入出力スキーマ定義。
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from routeshare.notifications.schemas import NotificationResult


class SocialActionType(str, Enum):
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    LIKE = "like"
    UNLIKE = "unlike"
    COMMENT = "comment"


class FollowRequest(BaseModel):
    follower_id: str = Field(..., min_length=1, description="フォローするユーザー ID")
    following_id: str = Field(..., min_length=1, description="フォローされるユーザー ID")


class LikeRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="いいねするユーザー ID")
    bookmark_id: str = Field(..., min_length=1, description="対象ブックマーク ID")
    owner_id: Optional[str] = Field(
        None,
        description="ブックマーク（ルート）の作成者 ID。いいね時の通知先",
    )


class CommentRequest(BaseModel):
    author_id: str = Field(..., min_length=1, description="コメント投稿者 ID")
    bookmark_id: str = Field(..., min_length=1, description="対象ブックマーク ID")
    owner_id: Optional[str] = Field(None, description="ブックマーク（ルート）の作成者 ID。通知先")
    content: str = Field(..., min_length=1, description="コメント本文。@username でメンションできる")


class SocialActionResult(BaseModel):
    """
    ソーシャル操作 1 件分の結果。

    notifications には副作用として作成を試みた通知の結果（created / suppressed）が入る。
    通知の作成に失敗したものは notification_failures に件数だけ数える。
    """

    action: SocialActionType
    record: Optional[Dict[str, Any]] = Field(None, description="作成されたレコード（作成系の操作のみ）")
    removed: Optional[bool] = Field(None, description="削除系の操作で実際に削除されたかどうか")
    notifications: List[NotificationResult] = Field(default_factory=list)
    notification_failures: int = Field(0, ge=0)
