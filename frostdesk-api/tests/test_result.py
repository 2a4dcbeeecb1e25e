import dataclasses

import pytest

from app.services.result import Result


class TestResultSuccess:
    def test_success_creates_ok_result(self):
        result = Result.success("draft text")
        assert result.ok is True
        assert result.value == "draft text"
        assert result.error is None
        assert result.error_code is None


class TestResultFailure:
    def test_failure_creates_not_ok_result(self):
        result = Result.failure("Outbound rate limit reached", "rate_limited")
        assert result.ok is False
        assert result.error == "Outbound rate limit reached"
        assert result.error_code == "rate_limited"
        assert result.value is None

    def test_failure_default_code(self):
        assert Result.failure("Error message").error_code == "unknown"


class TestResultIsImmutable:
    def test_cannot_reassign_fields(self):
        result = Result.success("draft text")
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.ok = False
