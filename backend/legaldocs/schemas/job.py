"""任务相关的Pydantic schemas"""
from pydantic import BaseModel, Field
from typing import Optional


class JobAcceptedResponse(BaseModel):
    """任务受理响应"""
    jobId: str


class PendingJobsResponse(BaseModel):
    """某个法律依据是否还有未完成的抽取任务"""
    hasPendingJobs: bool
    progress: Optional[int] = Field(None, ge=0, le=100)


class JobRemovedResponse(BaseModel):
    """任务移除响应"""
    success: bool = True
    jobId: str
    message: str = "Job removed"
