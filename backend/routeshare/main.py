# backend/routeshare/main.py

"""
バックエンドアプリケーションのエントリーポイント。

主な責務:
- /notifications エンドポイント（通知の作成・一覧・既読化・削除）を公開する
- /social エンドポイント（フォロー・いいね・コメント）を公開する
"""

from fastapi import FastAPI

from routeshare.notifications.router import router as notifications_router
from routeshare.social.router import router as social_router


def create_app() -> FastAPI:
    """
    FastAPI アプリケーションファクトリ。

    - 通知エンドポイント (/notifications)
    - ソーシャル操作エンドポイント (/social)
    - ヘルスチェックエンドポイント (/health)
    """
    app = FastAPI(title="routeshare backend")

    # ルーター登録
    app.include_router(notifications_router)
    app.include_router(social_router)

    @app.get("/health", tags=["health"])
    def health_check() -> dict:
        """
        簡易ヘルスチェックエンドポイント。
        """
        return {"status": "ok"}

    return app


# uvicorn 実行時のエントリーポイント
app = create_app()
