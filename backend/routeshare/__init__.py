# backend/routeshare/__init__.py
"""
routeshare backend application package.

This package contains:
- main: FastAPI application entrypoint
- remote: backend-as-a-service (Supabase / PostgREST) table client
- notifications: notification policy (self-suppression, rate limiting) and read state
- social: follow / like / comment actions that emit notifications
"""
