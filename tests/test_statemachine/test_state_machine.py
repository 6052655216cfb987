"""状态机 Mixin 测试"""

from enum import Enum

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from yrank.exceptions import ErrorCode, RankingException, register_exception_handlers
from yrank.statemachine import (
    InvalidStateError,
    InvalidTransitionError,
    StateMachineMixin,
    TransitionCallbackError,
    TransitionGuardError,
)


class DocState(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    PUBLISHED = "published"


class Document(StateMachineMixin):
    """测试用状态机"""

    __state_enum__ = DocState
    __state_initial__ = DocState.DRAFT
    __state_transitions__ = {
        DocState.DRAFT: [DocState.REVIEW],
        DocState.REVIEW: [DocState.DRAFT, DocState.PUBLISHED],
        DocState.PUBLISHED: [],
    }
    __state_history_limit__ = 3

    def __init__(self):
        self.init_state()
        self.events = []
        self.approved = True
        self.fail_enter_published = False

    def guard_can_published(self):
        return self.approved

    def on_exit_draft(self, **context):
        self.events.append(("exit", "draft", context))

    def on_enter_review(self, **context):
        self.events.append(("enter", "review", context))

    def on_enter_published(self, **context):
        if self.fail_enter_published:
            raise RuntimeError("publish failed")
        self.events.append(("enter", "published", context))

    def on_transition_review_published(self, **context):
        self.events.append(("transition", "review_published", context))


class TestStateMachineMixin:
    """StateMachineMixin 测试"""

    def test_initial_state(self):
        """测试初始状态"""
        doc = Document()
        assert doc.get_state() is DocState.DRAFT
        assert doc.is_state("draft")
        assert doc.state_history == []

    def test_transition_runs_hooks_in_order(self):
        """测试钩子按顺序执行并收到上下文"""
        doc = Document()

        assert doc.transition_to(DocState.REVIEW, reviewer="ana") is True
        assert doc.transition_to("published") is True

        assert doc.events == [
            ("exit", "draft", {"reviewer": "ana"}),
            ("enter", "review", {"reviewer": "ana"}),
            ("enter", "published", {}),
            ("transition", "review_published", {}),
        ]
        assert doc.is_state(DocState.PUBLISHED)

    def test_invalid_transition(self):
        """测试不允许的转换"""
        doc = Document()

        with pytest.raises(InvalidTransitionError) as exc_info:
            doc.transition_to(DocState.PUBLISHED)

        assert exc_info.value.allowed_transitions == [DocState.REVIEW]
        assert doc.transition_to(DocState.PUBLISHED, raise_on_error=False) is False
        assert doc.is_state(DocState.DRAFT)

    def test_invalid_state_value(self):
        """测试无效的状态值"""
        with pytest.raises(InvalidStateError):
            Document().transition_to("archived")

    def test_guard_blocks_transition(self):
        """测试守卫阻止转换"""
        doc = Document()
        doc.transition_to(DocState.REVIEW)
        doc.approved = False

        with pytest.raises(TransitionGuardError):
            doc.transition_to(DocState.PUBLISHED)
        assert doc.transition_to(DocState.PUBLISHED, raise_on_error=False) is False
        assert doc.is_state(DocState.REVIEW)

    def test_force_skips_rules_and_guard(self):
        """测试 force 跳过规则和守卫"""
        doc = Document()
        doc.approved = False

        assert doc.transition_to(DocState.PUBLISHED, force=True) is True
        assert doc.is_state(DocState.PUBLISHED)

    def test_enter_hook_failure_rolls_back(self):
        """测试进入钩子失败时回滚状态"""
        doc = Document()
        doc.transition_to(DocState.REVIEW)
        doc.fail_enter_published = True

        with pytest.raises(TransitionCallbackError) as exc_info:
            doc.transition_to(DocState.PUBLISHED)

        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert doc.is_state(DocState.REVIEW)

    def test_same_state_is_noop(self):
        """测试转换到当前状态直接返回 True，不执行钩子"""
        doc = Document()
        assert doc.transition_to(DocState.DRAFT) is True
        assert doc.events == []
        assert doc.state_history == []

    def test_history_limit(self):
        """测试只保留最近的状态变更"""
        doc = Document()
        for _ in range(3):
            doc.transition_to(DocState.REVIEW)
            doc.transition_to(DocState.DRAFT)

        history = doc.state_history
        assert len(history) == 3
        assert (history[-1].from_state, history[-1].to_state) == (DocState.REVIEW, DocState.DRAFT)

    def test_available_transitions(self):
        """测试查询可用转换"""
        doc = Document()
        assert doc.get_available_transitions() == [DocState.REVIEW]
        assert doc.can_transition_to("review")
        assert not doc.can_transition_to(DocState.PUBLISHED)
        assert doc.is_any_state(DocState.REVIEW, DocState.DRAFT)
        assert set(Document.get_all_states()) == set(DocState)

    def test_before_transition_can_veto(self):
        """测试 before_transition 返回 False 阻止转换"""

        class Locked(Document):
            def before_transition(self, from_state, to_state, **context):
                return False

        doc = Locked()
        assert doc.transition_to(DocState.REVIEW) is False
        assert doc.is_state(DocState.DRAFT)


class TestStateMachineErrors:
    """状态机异常测试"""

    def test_invalid_transition_is_business_error(self):
        """测试无效转换属于业务异常并记录状态值"""
        with pytest.raises(InvalidTransitionError) as exc_info:
            Document().transition_to(DocState.PUBLISHED)

        exc = exc_info.value
        assert isinstance(exc, RankingException)
        assert exc.code == ErrorCode.INVALID_TRANSITION
        assert exc.status_code == 409
        assert exc.message == "不能从 draft 转换到 published"
        assert exc.to_dict()["details"] == ["允许的目标状态: review"]
        assert exc.to_dict()["extra"] == {"from_state": "draft", "to_state": "published"}

    def test_error_codes(self):
        """测试各异常的错误码和状态码"""
        with pytest.raises(InvalidStateError) as state_error:
            Document().transition_to("archived")
        assert (state_error.value.code, state_error.value.status_code) == (ErrorCode.INVALID_STATE, 422)

        doc = Document()
        doc.transition_to(DocState.REVIEW)
        doc.approved = False
        with pytest.raises(TransitionGuardError) as guard_error:
            doc.transition_to(DocState.PUBLISHED)
        assert guard_error.value.code == ErrorCode.TRANSITION_REJECTED
        assert guard_error.value.extra["guard"] == "guard_can_published"

        doc.approved = True
        doc.fail_enter_published = True
        with pytest.raises(TransitionCallbackError) as callback_error:
            doc.transition_to(DocState.PUBLISHED)
        assert callback_error.value.status_code == 500
        assert callback_error.value.details == ["on_enter_published: RuntimeError"]

    def test_rendered_as_error_envelope(self):
        """测试状态错误经异常处理器返回统一响应"""
        app = FastAPI()
        register_exception_handlers(app)

        @app.post("/documents/publish")
        def publish():
            Document().transition_to(DocState.PUBLISHED)

        response = TestClient(app).post("/documents/publish")

        assert response.status_code == 409
        body = response.json()
        assert body["status"] == "error"
        assert body["error_code"] == "INVALID_TRANSITION"
        assert body["message"] == "不能从 draft 转换到 published"
        assert body["msg_details"] == ["允许的目标状态: review"]
