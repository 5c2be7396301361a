import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from core.config import LOG_LEVEL, ALLOWED_ORIGINS, UPLOAD_BASE_PATH, CLEANUP_INTERVAL_HOURS, VERIFICATION_MODE
from core.database import Base, engine
from providers.sms_provider import get_sms_provider
from providers.identity_provider import get_identity_provider
from providers.storage_provider import get_storage_provider
from routers.auth_router import router as auth_router
from routers.user_router import router as user_router
from routers.verify_router import router as verify_router
from routers.post_router import router as post_router
from routers.message_router import router as message_router
from routers.search_router import router as search_router
from routers.upload_router import router as upload_router
from services.auto_cleanup import AutoCleanup
import models.user
import models.sms_code
import models.attempt_tracker
import models.identity_verification
import models.post
import models.conversation

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

auto_cleanup = AutoCleanup(interval_hours=CLEANUP_INTERVAL_HOURS)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting CoSync backend...")
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Database tables created")

    app.state.sms_provider = get_sms_provider()
    app.state.identity_provider = get_identity_provider()
    app.state.storage_provider = get_storage_provider()
    logger.info(f"Providers ready (mode: {VERIFICATION_MODE})")

    os.makedirs(UPLOAD_BASE_PATH, exist_ok=True)

    auto_cleanup.start()
    logger.info("Auto cleanup service started")

    yield

    auto_cleanup.stop()
    logger.info("CoSync backend stopped")

app = FastAPI(title="CoSync Backend", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.detail},
                        headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "请求参数不合法") if errors else "请求参数不合法"
    return JSONResponse(status_code=422, content={"success": False, "message": message})

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", str(exc))
    return JSONResponse(status_code=500, content={"success": False, "message": "服务器内部错误"})

app.include_router(auth_router)
app.include_router(user_router)
app.include_router(verify_router)
app.include_router(post_router)
app.include_router(message_router)
app.include_router(search_router)
app.include_router(upload_router)

# directory may not exist at import time; it is created in the lifespan
app.mount("/uploads", StaticFiles(directory=UPLOAD_BASE_PATH, check_dir=False), name="uploads")

@app.get("/")
def root():
    return {
        "status": "CoSync API is running"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, log_level=LOG_LEVEL.lower())
