"""Root API router wiring."""

from fastapi import APIRouter

from smolchat.api.v1 import health, inbox, persona


api_router = APIRouter()
api_router.include_router(persona.router, prefix="/ai")
api_router.include_router(inbox.router, prefix="/ai")
api_router.include_router(health.router)
