# backend/app/api/endpoints/save.py
"""
API端点，接收前端实验页面提交的眼动/决策数据。
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from app.config.dependency_injection import get_ingestion_service, get_submission_payload
from app.schemas.response import SaveResponse
from app.services.ingestion_service import IngestionService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/save", response_model=SaveResponse, response_model_exclude_none=True, summary="保存实验数据")
def save_gaze_log(
        request: Request,
        payload: Any = Depends(get_submission_payload),
        user_agent: Optional[str] = Header(None),
        x_forwarded_for: Optional[str] = Header(None),
        service: IngestionService = Depends(get_ingestion_service),
):
    """
    兼容 {summary, rounds} 或 {summary, trials}。

    - **completedTrials**: 服务端重新数一遍 phase 为 decision 的 trial，忽略前端给的计数。
    - **skip**: 未配置 DATABASE_URL 时不落库，但仍返回 200 和计数。
    - **失败**: 建表或插入失败时返回 500 和 `{ok: false, error}`。
    - **请求体**: 不是合法 JSON 时按空提交处理，不返回 422。
    """
    try:
        result = service.ingest(
            payload,
            request.query_params,
            user_agent=user_agent,
            forwarded_for=x_forwarded_for,
            peer_host=request.client.host if request.client else None,
        )
    except Exception as e:
        logger.exception("save error")
        failure = SaveResponse(ok=False, error=str(e))
        return JSONResponse(status_code=500, content=failure.to_payload())

    return JSONResponse(content=result.to_payload())
