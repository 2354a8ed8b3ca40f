"""
HTTP and WebSocket routes, grouped by area and mounted under one router.
"""

from fastapi import APIRouter

from engage.routes import activities, admin, gallery, games, live, people, rewards, workbooks

router = APIRouter()
for module in (people, activities, games, rewards, gallery, workbooks, admin, live):
    router.include_router(module.router)
