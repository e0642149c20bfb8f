# backend/routeshare/notifications/__init__.py

"""
通知レイヤ用モジュール群。

構成イメージ:
- schemas: 通知レコード・入力・結果のスキーマ
- config: 種別ごとのレート制限ウィンドウと一覧の件数上限
- service: 通知作成ポリシー（自己通知の抑制・レート制限）と既読管理
- notices: ユーザー向けの一時的なお知らせ（失敗時のトースト相当）
- labels: 種別ごとの表示ラベル・アイコン・遷移先の対応表
- factory: アプリ全体で共有する NotificationService の生成
- router: FastAPI エンドポイント
"""
