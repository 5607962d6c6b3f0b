import logging
import os

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import state
from api.routers import ai, categories, documents, multi_agent, ops, tasks
from storage import db
from storage.memory_store import InMemoryTaskStore
from storage.task_store import PostgresTaskStore

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Logging configuration
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

TASK_STORE = os.getenv("TASK_STORE", "memory").strip().lower()
DB_INIT_SCHEMA = os.getenv("DB_INIT_SCHEMA", "false").lower() in {"1", "true", "yes"}
# Seeds a user into the in-memory store so local development has a usable token
DEV_API_TOKEN = os.getenv("DEV_API_TOKEN", "").strip()

app = FastAPI(title="Task Assistant")

app.include_router(ai.router)
app.include_router(documents.router)
app.include_router(multi_agent.router)
app.include_router(tasks.router)
app.include_router(categories.router)
app.include_router(ops.router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    msg = first.get("msg", "Invalid request")
    message = f"{field}: {msg}" if field else msg
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": message, "errors": jsonable_encoder(errors)},
    )


@app.on_event("startup")
async def startup() -> None:
    if TASK_STORE == "postgres":
        await db.init_db_pool()
        if DB_INIT_SCHEMA:
            await db.init_schema()
        state.task_store = PostgresTaskStore()
    else:
        store = InMemoryTaskStore()
        if DEV_API_TOKEN:
            store.add_user("Developer", "dev@localhost", token=DEV_API_TOKEN)
        state.task_store = store

    logger.info(f"Task store ready: {state.task_store.kind}")


@app.on_event("shutdown")
async def shutdown() -> None:
    if TASK_STORE == "postgres":
        await db.close_db_pool()
    logger.info("Shutdown complete")
