"""
IngestionService 单元测试

验证提交规范化、completed_trials 的服务端计算、身份信息优先级和 skip 分支，
存储适配器用 MagicMock 代替。
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from app.core.errors import StorageError
from app.schemas.gaze_log import GazeLogCreate, GazeSubmission
from app.services.ingestion_service import (
    NO_STORE_REASON,
    IngestionService,
    count_completed_trials,
    derive_aborted,
    is_present,
    resolve_client_ip,
    resolve_identity,
)


@pytest.fixture
def mock_store():
    store = MagicMock()
    store.save.return_value = SimpleNamespace(id=1)
    return store


class TestCountCompletedTrials:
    """completed_trials 计算测试"""

    def test_counts_only_decision_phase(self):
        rounds = [{"phase": "decision"}, {"phase": "practice"}, {"phase": "decision"}]
        assert count_completed_trials(rounds) == 2

    def test_excludes_missing_phase_and_non_dict_entries(self):
        rounds = [{"phase": "decision"}, {}, None, "decision", 3, {"phase": None}]
        assert count_completed_trials(rounds) == 1

    def test_phase_match_is_exact(self):
        rounds = [{"phase": "Decision"}, {"phase": "decision "}, {"phase": "decisions"}]
        assert count_completed_trials(rounds) == 0

    def test_non_list_counts_zero(self):
        assert count_completed_trials(None) == 0
        assert count_completed_trials({"phase": "decision"}) == 0

    def test_empty(self):
        assert count_completed_trials([]) == 0


class TestSubmissionNormalization:
    """宽松的请求体解析测试"""

    def test_rounds_takes_precedence_over_trials(self):
        submission = GazeSubmission.from_payload({
            "rounds": [{"phase": "practice"}],
            "trials": [{"phase": "decision"}],
        })
        assert submission.rounds == [{"phase": "practice"}]

    def test_trials_used_when_rounds_missing(self):
        submission = GazeSubmission.from_payload({"trials": [{"phase": "decision"}]})
        assert count_completed_trials(submission.rounds) == 1

    def test_trials_used_when_rounds_null(self):
        submission = GazeSubmission.from_payload({"rounds": None, "trials": [{"phase": "decision"}]})
        assert len(submission.rounds) == 1

    def test_empty_rounds_is_not_replaced_by_trials(self):
        submission = GazeSubmission.from_payload({"rounds": [], "trials": [{"phase": "decision"}]})
        assert submission.rounds == []

    @pytest.mark.parametrize("payload", [None, [], "text", 42, b"raw", {"summary": "x", "rounds": "y"}])
    def test_malformed_payload_defaults_to_empty(self, payload):
        submission = GazeSubmission.from_payload(payload)
        assert submission.summary == {}
        assert submission.rounds == []

    def test_nested_structures_kept_verbatim(self):
        summary = {"prolific_pid": "A", "gaze": {"samples": [[1, 2], [3, 4]]}}
        rounds = [{"phase": "decision", "fixations": [{"x": 0.1, "y": 0.2}]}]
        submission = GazeSubmission.from_payload({"summary": summary, "rounds": rounds})
        assert submission.summary == summary
        assert submission.rounds == rounds


class TestAbortedFlag:
    """aborted 标记测试"""

    def test_top_level_flag(self):
        assert derive_aborted(GazeSubmission.from_payload({"aborted": True})) is True

    def test_summary_flag(self):
        assert derive_aborted(GazeSubmission.from_payload({"summary": {"aborted": 1}})) is True

    def test_defaults_false(self):
        assert derive_aborted(GazeSubmission.from_payload({"summary": {"aborted": False}})) is False
        assert derive_aborted(GazeSubmission.from_payload({})) is False

    @pytest.mark.parametrize("value", [{}, [], "no", -1, 0.5])
    def test_non_empty_containers_and_values_count_as_aborted(self, value):
        assert derive_aborted(GazeSubmission.from_payload({"aborted": value})) is True
        assert derive_aborted(GazeSubmission.from_payload({"summary": {"aborted": value}})) is True

    @pytest.mark.parametrize("value", [None, False, 0, 0.0, "", float("nan")])
    def test_falsy_values_are_not_aborted(self, value):
        assert derive_aborted(GazeSubmission.from_payload({"aborted": value, "summary": {"aborted": value}})) is False


class TestIsPresent:
    """与前端一致的缺失判定"""

    @pytest.mark.parametrize("value", [None, False, 0, 0.0, "", float("nan")])
    def test_missing(self, value):
        assert is_present(value) is False

    @pytest.mark.parametrize("value", [True, 1, "0", "false", {}, []])
    def test_present(self, value):
        assert is_present(value) is True


class TestIdentity:
    """身份信息优先级测试"""

    def test_summary_pid_wins_over_query(self):
        identity = resolve_identity({"prolific_pid": "A"}, {"PROLIFIC_PID": "B"})
        assert identity.prolific_pid == "A"

    def test_query_pid_used_when_summary_missing(self):
        identity = resolve_identity({}, {"PROLIFIC_PID": "B"})
        assert identity.prolific_pid == "B"

    def test_empty_summary_pid_falls_back_to_query(self):
        identity = resolve_identity({"prolific_pid": ""}, {"PROLIFIC_PID": "B"})
        assert identity.prolific_pid == "B"

    def test_all_absent_is_none(self):
        identity = resolve_identity({}, {})
        assert identity.prolific_pid is None
        assert identity.prolific_study_id is None
        assert identity.prolific_session_id is None

    def test_study_and_session_only_from_query(self):
        identity = resolve_identity(
            {"STUDY_ID": "ignored", "SESSION_ID": "ignored"},
            {"STUDY_ID": "study_1", "SESSION_ID": "sess_1"},
        )
        assert identity.prolific_study_id == "study_1"
        assert identity.prolific_session_id == "sess_1"

    def test_numeric_pid_is_stringified(self):
        assert resolve_identity({"prolific_pid": 123}, {}).prolific_pid == "123"

    @pytest.mark.parametrize("pid", [0, False, None, ""])
    def test_falsy_summary_pid_falls_back_to_query(self, pid):
        identity = resolve_identity({"prolific_pid": pid}, {"PROLIFIC_PID": "B"})
        assert identity.prolific_pid == "B"


class TestClientIp:
    """客户端IP解析测试"""

    def test_first_forwarded_entry(self):
        assert resolve_client_ip("203.0.113.7, 10.0.0.1", "10.0.0.2") == "203.0.113.7"

    def test_falls_back_to_peer(self):
        assert resolve_client_ip(None, "10.0.0.2") == "10.0.0.2"
        assert resolve_client_ip("", "10.0.0.2") == "10.0.0.2"

    def test_none_when_unknown(self):
        assert resolve_client_ip(None, None) is None


class TestIngest:
    """ingest 主流程测试"""

    def test_skip_path_without_store(self):
        service = IngestionService(store=None)
        result = service.ingest({"rounds": [{"phase": "decision"}] * 3}, {})
        assert result.ok is True
        assert result.skip == NO_STORE_REASON
        assert result.completed_trials == 3
        assert result.to_payload() == {"ok": True, "skip": NO_STORE_REASON, "completedTrials": 3}

    def test_persists_record_with_store(self, mock_store):
        service = IngestionService(store=mock_store)
        payload = {
            "summary": {"prolific_pid": "A", "aborted": True},
            "rounds": [{"phase": "decision"}, {"phase": "practice"}],
        }
        result = service.ingest(
            payload,
            {"PROLIFIC_PID": "B", "STUDY_ID": "S", "SESSION_ID": "X"},
            user_agent="pytest-agent",
            forwarded_for="198.51.100.1, 10.0.0.1",
            peer_host="10.0.0.9",
        )

        assert result.to_payload() == {"ok": True, "completedTrials": 1}
        mock_store.save.assert_called_once()
        record = mock_store.save.call_args.args[0]
        assert isinstance(record, GazeLogCreate)
        assert record.prolific_pid == "A"
        assert record.prolific_study_id == "S"
        assert record.prolific_session_id == "X"
        assert record.user_agent == "pytest-agent"
        assert record.ip == "198.51.100.1"
        assert record.summary == payload["summary"]
        assert record.rounds == payload["rounds"]
        assert record.completed_trials == 1
        assert record.aborted is True

    def test_client_supplied_count_is_ignored(self, mock_store):
        service = IngestionService(store=mock_store)
        payload = {
            "completedTrials": 99,
            "summary": {"completedTrials": 99, "completed_trials": 99},
            "rounds": [{"phase": "decision"}],
        }
        result = service.ingest(payload, {})
        assert result.completed_trials == 1
        assert mock_store.save.call_args.args[0].completed_trials == 1

    def test_storage_error_propagates(self, mock_store):
        mock_store.save.side_effect = StorageError("insert failed")
        service = IngestionService(store=mock_store)
        with pytest.raises(StorageError):
            service.ingest({"rounds": []}, {})
