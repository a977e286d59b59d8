import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError

from transconnect.config import settings
from transconnect.database import create_tables, get_redis
from transconnect.exceptions import ChatError, TransientIOError
from transconnect.logging_config import setup_logging
from transconnect.middleware import logging_middleware
from transconnect.websocket_manager import manager

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    await manager.start(await get_redis() if settings.REALTIME_PUBSUB else None)
    yield
    await manager.stop()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="TransConnect chat and matching API",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(logging_middleware)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(DBAPIError)
async def database_error_handler(request: Request, exc: DBAPIError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    error = TransientIOError("Temporary server error, please retry")
    return JSONResponse(status_code=error.status_code, content={"detail": error.message})

from transconnect.api import auth, users, matches, chat, websocket

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(matches.router, prefix="/api/matches", tags=["matches"])
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(websocket.router, tags=["websocket"])

@app.get("/")
async def root():
    return {"message": "TransConnect API", "version": settings.VERSION}

@app.get("/health")
async def health():
    return {"status": "ok", "onlineSockets": len(manager.get_connected_users())}
