import json
import logging
from typing import Any, Optional

from fastapi import Depends, Request

from app.crud.crud_gaze_log import GazeLogStore
from app.services.ingestion_service import IngestionService

logger = logging.getLogger(__name__)


def get_gaze_log_store(request: Request) -> Optional[GazeLogStore]:
    """
    获取应用启动时创建的存储适配器；未配置数据库时为 None
    """
    return getattr(request.app.state, "gaze_log_store", None)


def get_ingestion_service(
        store: Optional[GazeLogStore] = Depends(get_gaze_log_store)
) -> IngestionService:
    """
    获取 IngestionService 实例，注入存储适配器
    """
    return IngestionService(store=store)


async def get_submission_payload(request: Request) -> Any:
    """
    自行读取并解析 /save 的请求体。

    空请求体或无法解析的 JSON 返回 None，由 GazeSubmission 退回空结构，请求不会失败。
    NaN/Infinity 解析为 null（PostgreSQL 的 JSONB 不接受非有限数字）。
    """
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body, parse_constant=lambda _: None)
    except ValueError as e:
        # UnicodeDecodeError 也是 ValueError 的子类
        logger.warning(f"Unparseable /save body ({len(body)} bytes): {e}")
        return None
