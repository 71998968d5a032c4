from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from api.bootstrap import build_controller, build_kv_store, build_llm
from api.config import get_settings
from api.routes.chat_routes import chat_routes
from api.routes.space_routes import space_routes
from api.routes.workspace_routes import workspace_routes
from api.services.chat_store import ChatRecordStore
from api.services.space_store import SpaceRecordStore
from api.utils.errors import AppError
from api.utils.logger import clear_request_id, configure_logging, set_request_id

settings = get_settings()
logger = configure_logging(log_dir=settings.log_dir, level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    kv = build_kv_store(settings)
    llm = build_llm(settings)
    controller = build_controller(settings, kv, llm)
    app.state.kv = kv
    app.state.llm = llm
    app.state.chat_store = ChatRecordStore(kv)
    app.state.space_store = SpaceRecordStore(kv)
    app.state.controller = controller

    await controller.refresh()
    logger.info("workspace ready user=%s chats=%s spaces=%s", controller.user_id, len(controller.chats), len(controller.spaces))
    try:
        yield
    finally:
        # Queued writes are flushed before the connections go away.
        await controller.close()
        await llm.close()
        await kv.close()
        logger.info("shutdown complete")


app = FastAPI(lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logger(request: Request, call_next):
    rid = set_request_id(request.headers.get("x-request-id"))
    try:
        logger.info("request start method=%s path=%s client=%s", request.method, request.url.path, request.client)
        response: Response = await call_next(request)
        logger.info("request end status=%s method=%s path=%s", response.status_code, request.method, request.url.path)
        response.headers["x-request-id"] = rid
        return response
    except Exception:
        logger.exception("request error method=%s path=%s", request.method, request.url.path)
        raise
    finally:
        clear_request_id()


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("app error status=%s method=%s path=%s error=%s", exc.status_code, request.method, request.url.path, exc.message)
    else:
        logger.warning("app error status=%s method=%s path=%s error=%s", exc.status_code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.exception("http error status=%s method=%s path=%s detail=\n%s", exc.status_code, request.method, request.url.path, exc.detail)
    else:
        logger.warning("http error status=%s method=%s path=%s detail=\n%s", exc.status_code, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("validation error method=%s path=%s errors=\n%s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Never leak internal exception details to clients.
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.get("/")
def read_root():
    return {"message": "StudySpace is Healthy"}


app.include_router(chat_routes, prefix="/api/chat")
app.include_router(space_routes, prefix="/api/spaces")
app.include_router(workspace_routes, prefix="/api/workspace")

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
