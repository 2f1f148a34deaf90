from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ✅ middlewares
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ routers
from routers import assessment_results, assessments, reports

from database.db import Base, engine

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS (frontend admin UI)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ request latency header (X-Latency-Ms)
app.add_middleware(TimingMiddleware)

# ✅ consistent JSON error envelope
add_error_handlers(app)

# ✅ /v1 prefixed routers
app.include_router(assessments.router,        prefix="/v1")
app.include_router(assessment_results.router, prefix="/v1")
app.include_router(reports.router,            prefix="/v1")


@app.on_event("startup")
def _create_tables():
    if settings.DB_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")


# ✅ health check
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}


@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} {settings.APP_VERSION}"}
