import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.api import api_router, root_router
from app.config import get_settings
from app.database import engine, Base, SessionLocal
from app.models import Post, Setting
from app.services.renewal_scheduler import RenewalScheduler

# Missing required configuration fails here, before serving anything
settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Blog Pipeline",
    description="Google Docs in a Drive folder, published as blog posts",
    version="1.0.0"
)

origins = settings.cors_origins or [
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

renewal_scheduler = RenewalScheduler(settings, SessionLocal)


@app.on_event("startup")
async def on_startup():
    """Create database tables and start the daily watch renewal."""
    Base.metadata.create_all(bind=engine)
    logger.info("✅ Database tables created/verified")

    if settings.renewal_enabled:
        await renewal_scheduler.start()


@app.on_event("shutdown")
async def on_shutdown():
    await renewal_scheduler.stop()


app.include_router(root_router)
app.include_router(api_router)


@app.get("/")
def health_check():
    return {"status": "ok"}
