# backend/routeshare/remote/__init__.py

"""
バックエンド・アズ・ア・サービス（Supabase / PostgREST）連携用モジュール群。

主な責務:
- テーブル単位の select / insert / update / delete を提供する
- HTTP エラーを型付きの例外に変換する
- 上位レイヤー（notifications / social）からは TableClient として差し替え可能にする
"""
