# wappy/api/v1/router.py
"""Main API router combining all v1 endpoints"""
from fastapi import APIRouter

from wappy.api.v1 import chats, messages, templates, tenants

api_router = APIRouter()

# Include all routers
api_router.include_router(tenants.router, prefix="/tenants", tags=["Tenants"])
api_router.include_router(chats.router, prefix="/chats", tags=["Chats"])
api_router.include_router(messages.router, prefix="/messages", tags=["Messages"])
api_router.include_router(templates.router, prefix="/templates", tags=["Templates"])
