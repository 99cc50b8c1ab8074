# backend/app/services/ingestion_service.py
"""
/save 的业务逻辑：规范化提交、服务端重新计算派生字段、调用存储适配器。

completed_trials 只认服务端的计算结果，前端传来的任何计数都会被忽略。
aborted 直接取自前端（summary 或顶层字段），不做服务端校验。
"""
import logging
from typing import Any, Mapping, Optional

from app.crud.crud_gaze_log import GazeLogStore
from app.schemas.gaze_log import GazeLogCreate, GazeSubmission, IdentityContext
from app.schemas.response import SaveResponse

logger = logging.getLogger(__name__)

DECISION_PHASE = "decision"
NO_STORE_REASON = "no DATABASE_URL"


def count_completed_trials(rounds: Any) -> int:
    """统计 phase 恰好为 "decision" 的 trial 数；非列表输入计为 0。"""
    if not isinstance(rounds, list):
        return 0
    return sum(
        1 for r in rounds
        if isinstance(r, dict) and r.get("phase") == DECISION_PHASE
    )


def is_present(value: Any) -> bool:
    """
    前端（JavaScript）的真值规则：只有 null、false、0、NaN 和空字符串算缺失，
    空对象和空数组算有值。
    """
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, (int, float)):
        return value != 0 and value == value  # NaN 也算缺失
    if isinstance(value, str):
        return value != ""
    return True


def derive_aborted(submission: GazeSubmission) -> bool:
    return is_present(submission.aborted) or is_present(submission.summary.get("aborted"))


def _clean(value: Any) -> Optional[str]:
    if not is_present(value):
        return None
    return str(value)


def resolve_identity(summary: Mapping[str, Any], query: Mapping[str, Any]) -> IdentityContext:
    """
    参与者ID: summary.prolific_pid 优先，其次 query 的 PROLIFIC_PID；
    研究ID/会话ID 只来自 query。缺失的判定见 is_present。
    """
    return IdentityContext(
        prolific_pid=_clean(summary.get("prolific_pid")) or _clean(query.get("PROLIFIC_PID")),
        prolific_study_id=_clean(query.get("STUDY_ID")),
        prolific_session_id=_clean(query.get("SESSION_ID")),
    )


def resolve_client_ip(forwarded_for: Optional[str], peer_host: Optional[str]) -> Optional[str]:
    """X-Forwarded-For 的第一项优先，否则用传输层对端地址。"""
    first = (forwarded_for or "").split(",")[0].strip()
    return first or peer_host or None


class IngestionService:
    """
    处理一次提交。store 为 None 表示未配置数据库，走显式的 skip 分支。
    """

    def __init__(self, store: Optional[GazeLogStore]):
        self.store = store

    def build_record(
        self,
        submission: GazeSubmission,
        identity: IdentityContext,
        *,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> GazeLogCreate:
        return GazeLogCreate(
            **identity.model_dump(),
            user_agent=user_agent or None,
            ip=ip,
            summary=submission.summary,
            rounds=submission.rounds,
            completed_trials=count_completed_trials(submission.rounds),
            aborted=derive_aborted(submission),
        )

    def ingest(
        self,
        payload: Any,
        query: Mapping[str, Any],
        *,
        user_agent: Optional[str] = None,
        forwarded_for: Optional[str] = None,
        peer_host: Optional[str] = None,
    ) -> SaveResponse:
        """
        规范化提交并（在配置了数据库时）持久化。

        Args:
            payload: 原始请求体，可能是任意 JSON 值
            query: 请求的 query 参数
            user_agent: User-Agent 请求头
            forwarded_for: X-Forwarded-For 请求头
            peer_host: 传输层对端地址

        Returns:
            SaveResponse: 成功或 skip 的确认

        Raises:
            StorageError: 建表或插入失败，由 API 层转换为 500 响应
        """
        submission = GazeSubmission.from_payload(payload)
        identity = resolve_identity(submission.summary, query)
        record = self.build_record(
            submission,
            identity,
            user_agent=user_agent,
            ip=resolve_client_ip(forwarded_for, peer_host),
        )

        if self.store is None:
            # 没配置数据库也不报错，方便本地调试
            logger.debug(f"Skipping persistence for participant {identity.prolific_pid}")
            return SaveResponse(ok=True, skip=NO_STORE_REASON, completed_trials=record.completed_trials)

        saved = self.store.save(record)
        logger.info(
            f"Saved gaze log id={saved.id} participant={identity.prolific_pid} "
            f"completed_trials={record.completed_trials} aborted={record.aborted}"
        )
        return SaveResponse(ok=True, completed_trials=record.completed_trials)

