"""异常类与全局异常处理器测试"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from yrank.exceptions import (
    BufferMismatchError,
    DispatchFailedException,
    Err,
    ErrorCode,
    FetchFailedException,
    FilterConflictException,
    InvalidRankException,
    RankingException,
    RankTargetNotFoundException,
    register_exception_handlers,
    translate_validation_error,
)


@pytest.fixture
def error_app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.put("/conflict")
    def conflict():
        raise Err.filter_conflict(details=["search: Ubud"], search="Ubud")

    @app.get("/custom")
    def custom():
        raise RankingException("自定义错误", code="CUSTOM_CODE")

    return app


class TestErrFactory:
    """Err 快捷创建测试"""

    @pytest.mark.parametrize(
        "factory, exc_type, status_code, code",
        [
            (Err.fetch_failed, FetchFailedException, 503, ErrorCode.FETCH_FAILED),
            (Err.filter_conflict, FilterConflictException, 409, ErrorCode.FILTER_CONFLICT),
            (Err.dispatch_failed, DispatchFailedException, 502, ErrorCode.DISPATCH_FAILED),
            (Err.not_found, RankTargetNotFoundException, 404, ErrorCode.RANK_TARGET_NOT_FOUND),
            (Err.invalid_rank, InvalidRankException, 422, ErrorCode.INVALID_RANK),
        ],
    )
    def test_factories(self, factory, exc_type, status_code, code):
        """测试各快捷方法的异常类型、状态码和错误码"""
        exc = factory()

        assert isinstance(exc, exc_type)
        assert isinstance(exc, RankingException)
        assert exc.status_code == status_code
        assert exc.code == code
        assert exc.code == code.value
        assert exc.details == []
        assert str(exc) == exc.message

    def test_extra_context(self):
        """测试额外上下文"""
        exc = Err.not_found("区域不存在", item_id=12)

        assert exc.message == "区域不存在"
        assert exc.extra == {"item_id": 12}
        assert "RankTargetNotFoundException" in repr(exc)

    def test_dispatch_failed_keeps_result(self):
        """测试回写失败异常携带批次结果"""
        marker = object()
        exc = Err.dispatch_failed(details=["C: rejected"], result=marker)

        assert exc.result is marker
        assert exc.details == ["C: rejected"]
        assert "result" not in exc.extra

    def test_to_dict_returns_copies(self):
        """测试 to_dict 返回的列表与字典可以安全修改"""
        exc = RankingException("出错了", details=["a"], ids=[1, 2])

        data = exc.to_dict()
        data["details"].append("b")
        data["extra"]["ids"].append(3)

        assert exc.details == ["a"]
        assert exc.extra == {"ids": [1, 2]}
        assert data["status_code"] == 400
        assert data["code"] == ErrorCode.BUSINESS_ERROR

    def test_buffer_mismatch_is_value_error(self):
        """测试缓冲区不一致异常"""
        exc = BufferMismatchError(missing=["A"], unexpected=["Z"])

        assert isinstance(exc, ValueError)
        assert exc.missing == ["A"]
        assert exc.unexpected == ["Z"]
        assert "missing=['A']" in str(exc)


class TestExceptionHandlers:
    """全局异常处理器测试"""

    def test_business_exception_envelope(self, error_app, monkeypatch):
        """测试业务异常转换为统一响应"""
        monkeypatch.delenv("DEBUG", raising=False)

        response = TestClient(error_app).put("/conflict")

        assert response.status_code == 409
        assert response.json() == {
            "status": "error",
            "message": "请先清除搜索和筛选条件再调整排序",
            "msg_details": ["search: Ubud"],
            "data": {},
            "error_code": "FILTER_CONFLICT",
        }

    def test_debug_info(self, error_app, monkeypatch):
        """测试调试模式返回额外上下文"""
        monkeypatch.setenv("DEBUG", "true")

        body = TestClient(error_app).put("/conflict").json()

        assert body["debug_info"] == {"search": "Ubud"}

    def test_custom_code(self, error_app):
        """测试字符串错误码"""
        response = TestClient(error_app).get("/custom")

        assert response.status_code == 400
        assert response.json()["error_code"] == "CUSTOM_CODE"

    def test_method_not_allowed(self, error_app):
        """测试 HTTP 异常使用统一格式"""
        response = TestClient(error_app).get("/conflict")

        assert response.status_code == 405
        body = response.json()
        assert body["status"] == "error"
        assert body["error_code"] == "HTTP_405"


class TestTranslateValidationError:
    """验证错误翻译测试"""

    def test_context_message(self):
        assert translate_validation_error({"type": "less_than_equal", "ctx": {"le": 100}}) == "必须小于或等于 100"

    def test_missing_context(self):
        """测试缺少上下文时返回模板原文"""
        assert translate_validation_error({"type": "greater_than"}) == "必须大于 {gt}"

    def test_static_message(self):
        assert translate_validation_error({"type": "int_parsing"}) == "必须是整数"

    def test_unknown_type(self):
        assert translate_validation_error({"type": "url_scheme"}) is None
