# backend/routeshare/remote/config.py

"""
リモートテーブル連携に必要な設定値をまとめるモジュール。
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from routeshare.utils.config import get_env, get_env_int


@dataclass(frozen=True)
class RemoteSettings:
    """Supabase REST API 用の設定値コンテナ。"""

    base_url: str
    api_key: str
    access_token: Optional[str] = None
    schema: str = "public"
    timeout_seconds: int = 10

    @property
    def rest_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/rest/v1"


@lru_cache()
def get_remote_settings() -> RemoteSettings:
    """
    環境変数からリモート設定を読み込む。

    必須:
      - SUPABASE_URL
      - SUPABASE_ANON_KEY

    任意:
      - SUPABASE_ACCESS_TOKEN    (ログインユーザーの JWT。未設定なら anon key を使う)
      - SUPABASE_SCHEMA          (デフォルト: public)
      - SUPABASE_TIMEOUT_SECONDS (デフォルト: 10)
    """
    base_url = get_env("SUPABASE_URL")
    api_key = get_env("SUPABASE_ANON_KEY")

    access_token = get_env("SUPABASE_ACCESS_TOKEN", required=False)
    schema = get_env("SUPABASE_SCHEMA", default="public", required=False)
    timeout_seconds = get_env_int("SUPABASE_TIMEOUT_SECONDS", default=10)

    return RemoteSettings(
        base_url=base_url,
        api_key=api_key,
        access_token=access_token,
        schema=schema,
        timeout_seconds=timeout_seconds,
    )
