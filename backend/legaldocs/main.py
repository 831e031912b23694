"""FastAPI应用主文件.

Review note:
- lifespan 内建表、创建任务队列注册表并启动 worker 池，关闭时先停 worker。
- 路由通过 `app.state.jobs` 共享同一个注册表。
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from legaldocs.api.errors import install_exception_handlers
from legaldocs.config import settings
from legaldocs.database import async_session_maker, init_db
from legaldocs.services.jobs.registry import JobRegistry

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时执行
    logger.info("启动法律文档处理后端...")

    # 确保必要的目录存在
    os.makedirs("data", exist_ok=True)
    os.makedirs(settings.JOBS_DATA_DIR, exist_ok=True)

    # 初始化数据库
    await init_db()
    logger.info("数据库初始化完成")

    registry = getattr(app.state, "jobs", None) or JobRegistry.from_settings(async_session_maker)
    app.state.jobs = registry
    await registry.start()
    logger.info("任务队列已启动")

    yield

    # 关闭时执行
    await registry.close()
    logger.info("关闭法律文档处理后端...")


# 创建FastAPI应用
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="法律文档条款抽取与需求识别API",
    lifespan=lifespan,
)

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": "LegalDocs API",
        "version": settings.APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check(request: Request):
    """健康检查（附带各任务队列的运行状态）"""
    registry = getattr(request.app.state, "jobs", None)
    queues = {
        queue.name: {"running": queue.is_running, "paused": queue.is_paused}
        for queue in (registry or [])
    }
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "queues": queues,
    }


# 导入并注册路由
from legaldocs.api.v1 import articles, jobs, req_identification
app.include_router(jobs.router, prefix="/api/v1", tags=["jobs"])
app.include_router(articles.router, prefix="/api/v1", tags=["articles"])
app.include_router(req_identification.router, prefix="/api/v1", tags=["req-identification"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "legaldocs.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
