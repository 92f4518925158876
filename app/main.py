import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import chat, gifts, streams, wallet
from app.broadcast import event_broadcaster
from app.config import settings
from app.database import create_tables
from app.errors import EconomyError, ValidationError

logging.getLogger("livegift").setLevel(settings.LOG_LEVEL.upper())
logger = logging.getLogger("livegift.api")

app = FastAPI(title="Livegift 直播打赏")
app.state.broadcaster = event_broadcaster

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(gifts.router, prefix="/api", tags=["礼物"])
app.include_router(wallet.router, prefix="/api", tags=["钱包"])
app.include_router(chat.router, prefix="/api", tags=["聊天"])
app.include_router(streams.router, prefix="/api", tags=["直播"])


@app.exception_handler(EconomyError)
async def economy_error_handler(request: Request, exc: EconomyError):
    logger.info("REQUEST_DENIED code=%s path=%s detail=%s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(item) for item in err.get("loc", ()) if item not in ("body", "query", "path")]
        parts.append(f"{'.'.join(loc) or '请求'}: {err.get('msg', '')}")
    return "; ".join(parts) or ValidationError.default_message


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # 入参校验失败与业务 ValidationError 使用同一种返回格式
    return await economy_error_handler(request, ValidationError(_describe_validation_errors(exc)))


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    # 详细信息只写服务端日志
    logger.exception("INTERNAL_ERROR method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "服务器内部错误", "code": "internal"})


@app.on_event("startup")
async def startup():
    await create_tables()


@app.on_event("shutdown")
async def shutdown():
    event_broadcaster.close()


@app.get("/")
async def root():
    return {"message": "欢迎使用 Livegift 直播打赏服务"}
