from fastapi import APIRouter
from app.api.endpoints import auth, webhook, posts, sync

# OAuth and Drive push endpoints live at the root (their URLs are registered with Google)
root_router = APIRouter()
root_router.include_router(auth.router)
root_router.include_router(webhook.router)

api_router = APIRouter(prefix="/api")
api_router.include_router(posts.router)
api_router.include_router(sync.router)
