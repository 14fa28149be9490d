import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis

from codex.ai.gemini_core import configure_gemini
from codex.ai.router import analysis_router, interview_router
from codex.auth.router import router as auth_router
from codex.blog.router import router as blog_router
from codex.config import APP_TITLE, APP_VERSION, CORS_ALLOW_ORIGINS, REDIS_URL
from codex.contests.judge import JudgeClient
from codex.contests.router import router as contest_router
from codex.dashboard.router import router as dashboard_router
from codex.db import create_client, create_indexes, get_database
from codex.errors import install_error_handlers
from codex.logging_config import setup_logging
from codex.problems.router import router as problem_router
from codex.promo.payments import PaymentGateway
from codex.promo.router import router as promo_router
from codex.promo.storage import ImageStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    mongo = create_client()
    app.state.mongo = mongo
    app.state.db = get_database(mongo)
    app.state.redis = Redis.from_url(REDIS_URL, decode_responses=True)
    app.state.judge = JudgeClient()
    app.state.storage = ImageStorage()
    app.state.payments = PaymentGateway()

    await create_indexes(app.state.db)
    configure_gemini()
    logger.info("Codex API started")

    try:
        yield
    finally:
        await app.state.judge.aclose()
        await app.state.storage.aclose()
        await app.state.redis.aclose()
        mongo.close()
        logger.info("Codex API stopped")


app = FastAPI(title=APP_TITLE, version=APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# ==================== ROUTER REGISTRATION ====================
app.include_router(auth_router, prefix="/user")
app.include_router(problem_router, prefix="/problem")
app.include_router(contest_router, prefix="/contest")
app.include_router(dashboard_router, prefix="/dashboard")
app.include_router(blog_router, prefix="/blog")
app.include_router(promo_router, prefix="/userPromo")
app.include_router(interview_router, prefix="/interview")
app.include_router(analysis_router, prefix="/analysis")
# ============================================================


@app.get("/health")
async def health_check(request: Request):
    status = {"mongo": "ok", "redis": "ok"}
    try:
        await request.app.state.db.command("ping")
    except Exception as e:
        logger.warning("Mongo health check failed: %s", e)
        status["mongo"] = "unreachable"
    try:
        await request.app.state.redis.ping()
    except Exception as e:
        logger.warning("Redis health check failed: %s", e)
        status["redis"] = "unreachable"

    healthy = all(v == "ok" for v in status.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"success": healthy, "data": {"status": "healthy" if healthy else "degraded", **status}},
    )
