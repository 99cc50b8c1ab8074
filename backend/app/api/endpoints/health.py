import time

from fastapi import APIRouter

from app.schemas.response import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    """供进程守护/负载均衡探活，不访问数据库。"""
    return HealthResponse(ok=True, ts=int(time.time() * 1000))
