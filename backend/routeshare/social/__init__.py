# backend/routeshare/social/__init__.py

"""
フォロー・いいね・コメントなどのソーシャル操作用モジュール群。

各操作は本処理（follows / likes / comments テーブルへの書き込み）を行ったあと、
副作用として NotificationService に通知の作成を依頼する。
通知の成否は本処理の成否に影響しない。
"""
