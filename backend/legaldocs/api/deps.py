"""路由共享的依赖"""
from fastapi import Request

from legaldocs.services.jobs.registry import JobRegistry


def get_job_registry(request: Request) -> JobRegistry:
    """获取在 lifespan 中创建的任务队列注册表"""
    return request.app.state.jobs
