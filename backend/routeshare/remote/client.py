# backend/routeshare/remote/client.py

"""
Supabase（PostgREST）との通信を担当するクライアントモジュール。

上位レイヤーには汎用的なテーブル操作だけを公開する:
- select: フィルタ・並び順・件数上限つきの読み取り
- insert: 1 レコードの作成（作成後のレコードを返す）
- update: フィルタに一致するレコードの部分更新
- delete: フィルタに一致するレコードの削除
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

import httpx

from .config import RemoteSettings, get_remote_settings

Row = Dict[str, Any]
Filters = Mapping[str, Any]


class RemoteClientError(RuntimeError):
    """リモートクライアント全般の例外。"""


class RemoteConnectionError(RemoteClientError):
    """接続エラー・タイムアウト時の例外。"""


class RemoteAuthError(RemoteClientError):
    """認証・権限関連のエラー。"""


class RemoteAPIError(RemoteClientError):
    """その他 REST API 呼び出し時のエラー。"""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TableClient(Protocol):
    """
    リモートテーブルの最小インターフェース。

    実装例:
    - RemoteTableClient: Supabase REST API 経由
    - テスト用のインメモリ実装
    """

    def select(
        self,
        table: str,
        *,
        filters: Optional[Filters] = None,
        columns: str = "*",
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Row]:  # pragma: no cover - Protocol
        ...

    def insert(self, table: str, record: Row) -> Row:  # pragma: no cover - Protocol
        ...

    def update(self, table: str, *, filters: Filters, patch: Row) -> List[Row]:  # pragma: no cover - Protocol
        ...

    def delete(self, table: str, *, filters: Filters) -> List[Row]:  # pragma: no cover - Protocol
        ...


def _format_scalar(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _quote_list_item(value: Any) -> str:
    text = _format_scalar(value)
    # PostgREST の in.() では区切り文字を含む値をダブルクォートで囲む
    if any(ch in text for ch in ',()"'):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def encode_filter(value: Any) -> str:
    """
    Python の値を PostgREST のフィルタ演算子つき文字列に変換する。

    - None       -> is.null
    - bool       -> is.true / is.false
    - list/tuple -> in.(a,b,...)
    - その他     -> eq.<value>
    """
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return "is.true" if value else "is.false"
    if isinstance(value, (list, tuple, set, frozenset)):
        return "in.(" + ",".join(_quote_list_item(v) for v in value) + ")"
    return f"eq.{_format_scalar(value)}"


def build_query_params(
    *,
    filters: Optional[Filters] = None,
    columns: Optional[str] = None,
    order_by: Optional[str] = None,
    descending: bool = True,
    limit: Optional[int] = None,
) -> List[Tuple[str, str]]:
    """
    select / update / delete 共通のクエリパラメータを組み立てる。
    """
    params: List[Tuple[str, str]] = []
    if columns is not None:
        params.append(("select", "".join(columns.split())))
    for column, value in (filters or {}).items():
        params.append((column, encode_filter(value)))
    if order_by:
        direction = "desc" if descending else "asc"
        params.append(("order", f"{order_by}.{direction}"))
    if limit is not None:
        params.append(("limit", str(int(limit))))
    return params


class RemoteTableClient:
    """
    Supabase REST API（PostgREST）の薄いラッパークライアント。

    認証セッションの管理は行わない。ログイン済みユーザーの JWT が必要な場合は
    RemoteSettings.access_token に渡しておく（RLS はサーバ側で評価される）。
    """

    def __init__(self, settings: Optional[RemoteSettings] = None) -> None:
        self._settings = settings or get_remote_settings()

    @property
    def settings(self) -> RemoteSettings:
        return self._settings

    def _build_headers(self, *, write: bool = False) -> Dict[str, str]:
        """
        REST API 呼び出しに必要なヘッダーを構築。
        """
        token = self._settings.access_token or self._settings.api_key
        headers = {
            "apikey": self._settings.api_key,
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "Accept-Profile": self._settings.schema,
        }
        if write:
            headers["Content-Type"] = "application/json"
            headers["Content-Profile"] = self._settings.schema
            headers["Prefer"] = "return=representation"
        return headers

    def _raise_for_status(self, response: httpx.Response) -> None:
        """
        HTTP レスポンスコードに応じて適切な例外を投げる。
        """
        if response.status_code == 401:
            raise RemoteAuthError("Unauthorized. Check SUPABASE_ANON_KEY / access token.")
        if response.status_code == 403:
            raise RemoteAuthError("Forbidden. Row level security rejected the request.")
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            raise RemoteAPIError(
                f"Remote API error: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=body,
            )

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: Iterable[Tuple[str, str]],
        json: Any = None,
    ) -> List[Row]:
        url = f"{self._settings.rest_url}/{table}"
        write = method != "GET"

        try:
            response = httpx.request(
                method,
                url,
                params=list(params),
                headers=self._build_headers(write=write),
                json=json,
                timeout=self._settings.timeout_seconds,
            )
        except httpx.RequestError as exc:
            raise RemoteConnectionError(f"Failed to call remote API ({method} {table}): {exc}") from exc

        self._raise_for_status(response)

        if response.status_code == 204 or not response.content:
            return []

        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteAPIError(
                "Unexpected remote API response: body is not JSON.",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        if not isinstance(data, list):
            raise RemoteAPIError(
                "Unexpected remote API response format: body is not a list.",
                status_code=response.status_code,
                body=data,
            )
        return data

    def select(
        self,
        table: str,
        *,
        filters: Optional[Filters] = None,
        columns: str = "*",
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """
        フィルタに一致するレコードを取得する。

        columns には PostgREST の select 句（埋め込みリソースを含む）をそのまま渡せる。
        """
        params = build_query_params(
            filters=filters,
            columns=columns,
            order_by=order_by,
            descending=descending,
            limit=limit,
        )
        return self._request("GET", table, params=params)

    def insert(self, table: str, record: Row) -> Row:
        """
        1 レコードを作成し、作成後のレコード（id / created_at などを含む）を返す。
        """
        rows = self._request("POST", table, params=[("select", "*")], json=record)
        if not rows:
            raise RemoteAPIError(f"Insert into '{table}' returned no representation.")
        return rows[0]

    def update(self, table: str, *, filters: Filters, patch: Row) -> List[Row]:
        """
        フィルタに一致するレコードを部分更新し、更新後のレコードを返す。
        """
        if not filters:
            raise ValueError("update requires at least one filter")
        params = build_query_params(filters=filters, columns="*")
        return self._request("PATCH", table, params=params, json=patch)

    def delete(self, table: str, *, filters: Filters) -> List[Row]:
        """
        フィルタに一致するレコードを削除し、削除されたレコードを返す。

        一致するレコードが無い場合は空リストになる（エラーにはしない）。
        """
        if not filters:
            raise ValueError("delete requires at least one filter")
        params = build_query_params(filters=filters, columns="*")
        return self._request("DELETE", table, params=params)
