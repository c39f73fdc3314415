"""
ReportAI - 后端主入口
"""
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from dotenv import load_dotenv

from reportai.database import init_database
from reportai.utils.logger import setup_logger
from reportai.middleware import SessionUserMiddleware
from reportai.routes import (
    auth_router,
    users_router,
    data_sources_router,
    oauth_router,
    uploads_router,
    reports_router,
    canvas_router,
    billing_router,
)

# 加载环境变量
load_dotenv()

# 初始化日志
logger = setup_logger()

SESSION_MAX_AGE = 24 * 60 * 60


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 在多进程模式下，每个worker都会执行此代码
    worker_id = os.getpid()
    logger.info(f"Worker {worker_id} 正在启动...")

    try:
        init_database()
        logger.info(f"Worker {worker_id} 数据库初始化成功")
    except Exception as e:
        logger.error(f"Worker {worker_id} 数据库初始化失败: {e}", exc_info=True)
        raise

    logger.info(f"Worker {worker_id} 启动完成")

    yield

    logger.info(f"Worker {worker_id} 正在关闭...")


app = FastAPI(
    title="ReportAI API",
    description="基于自然语言的AI商业报表生成服务",
    version="1.0.0",
    lifespan=lifespan
)

# 注册路由
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(data_sources_router)
app.include_router(oauth_router)
app.include_router(uploads_router)
app.include_router(reports_router)
app.include_router(canvas_router)
app.include_router(billing_router)

# === MIDDLEWARE REGISTRATION ===

# 后添加的中间件在外层：SessionMiddleware 先解码会话，SessionUserMiddleware 再读取
app.add_middleware(SessionUserMiddleware)
app.add_middleware(
    SessionMiddleware,
    secret_key=os.getenv("SESSION_SECRET", "reportai-dev-secret"),
    max_age=SESSION_MAX_AGE,
    https_only=os.getenv("NODE_ENV") == "production",
)
logger.info("✓ Session middleware registered")

cors_origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5000,http://localhost:5173").split(",")
    if origin.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === ERROR HANDLERS ===

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    logger.warning(f"请求参数校验失败: {request.method} {request.url.path} - {message}")
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"未处理的异常: {request.method} {request.url.path} - {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"message": str(exc) or "Internal Server Error"})


@app.get("/")
async def root():
    return {"message": "ReportAI API", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    host = os.getenv("BACKEND_HOST", "0.0.0.0")
    port = int(os.getenv("BACKEND_PORT", 8000))
    workers = int(os.getenv("BACKEND_WORKERS", 1))
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    logger.info(f"启动服务器: {host}:{port}, workers={workers}, log_level={log_level}")

    # 使用 workers 或 reload 时都必须传递导入字符串
    if workers > 1:
        uvicorn.run(
            "reportai.main:app",
            host=host,
            port=port,
            workers=workers,
            log_level=log_level,
            access_log=log_level == "debug"
        )
    else:
        uvicorn.run(
            "reportai.main:app",
            host=host,
            port=port,
            log_level=log_level,
            access_log=log_level == "debug",
            reload=True
        )
