"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import chat, generate, sessions

router = APIRouter()

# Standalone generation jobs
router.include_router(generate.router, tags=["generate"])

# Workspace sessions, actions and versions
router.include_router(sessions.router, tags=["sessions"])

# Workspace refinement chat
router.include_router(chat.router, tags=["chat"])
