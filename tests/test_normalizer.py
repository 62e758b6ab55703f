"""Tests for response normalization and error classification."""

from __future__ import annotations

import pytest

from toonify.core.classifier import classify_status, status_for
from toonify.core.normalizer import normalize_proxy_response, normalize_upstream
from toonify.core.results import ErrorCategory, Failure, RejectionKind, Success


class TestNormalizeUpstream:
    def test_url_shape(self) -> None:
        assert normalize_upstream({"data": [{"url": "https://x/y.png"}]}) == Success(image_url="https://x/y.png")

    def test_inline_shape(self) -> None:
        result = normalize_upstream({"data": [{"b64_json": "QUJD"}]})
        assert result == Success(image_url="data:image/png;base64,QUJD")

    def test_url_preferred_over_inline(self) -> None:
        result = normalize_upstream({"data": [{"url": "https://x/y.png", "b64_json": "QUJD"}]})
        assert result == Success(image_url="https://x/y.png")

    def test_output_items_shape(self) -> None:
        body = {
            "output": [
                {"type": "reasoning", "summary": []},
                {"type": "message", "content": [{"type": "output_text", "text": "here you go"}]},
                {"type": "image_generation_call", "status": "completed", "result": "UE5H"},
            ]
        }
        assert normalize_upstream(body) == Success(image_url="data:image/png;base64,UE5H")

    def test_output_item_without_result_skipped(self) -> None:
        body = {"output": [{"type": "image_generation_call", "status": "failed"}]}
        result = normalize_upstream(body)
        assert isinstance(result, Failure)
        assert result.category is ErrorCategory.NO_IMAGE_PRODUCED

    def test_no_image_reports_observed_tags(self) -> None:
        result = normalize_upstream({"data": [{"revised_prompt": "a cartoon"}], "output": [{"type": "message"}]})
        assert isinstance(result, Failure)
        assert result.category is ErrorCategory.NO_IMAGE_PRODUCED
        assert "data[0].revised_prompt" in result.message
        assert "output:message" in result.message

    @pytest.mark.parametrize("body", [{}, {"data": []}, None, ["unexpected"]])
    def test_unusable_bodies(self, body: object) -> None:
        result = normalize_upstream(body)
        assert isinstance(result, Failure)
        assert result.category is ErrorCategory.NO_IMAGE_PRODUCED
        assert result.ok is False

    def test_repeated_normalization_is_identical(self) -> None:
        body = {"data": [{"url": "https://x/y.png"}]}
        assert normalize_upstream(body) == normalize_upstream(body)


class TestClassifyStatus:
    @pytest.mark.parametrize("code", [408, 504])
    def test_timeouts(self, code: int) -> None:
        failure = classify_status(code)
        assert failure.category is ErrorCategory.TIMEOUT

    def test_payload_too_large(self) -> None:
        failure = classify_status(413)
        assert failure.category is ErrorCategory.UPSTREAM_REJECTED
        assert failure.kind is RejectionKind.PAYLOAD_TOO_LARGE
        assert "too large" in failure.message

    def test_rate_limited(self) -> None:
        failure = classify_status(429, {"error": {"message": "Slow down"}})
        assert failure.category is ErrorCategory.UPSTREAM_REJECTED
        assert failure.kind is RejectionKind.RATE_LIMITED
        assert failure.message.startswith("Too many requests")
        assert "Slow down" in failure.message

    def test_rate_limit_message_not_repeated(self) -> None:
        first = classify_status(429, {"error": {"message": "Slow down"}})
        again = classify_status(429, {"success": False, "error": first.message, "category": "UpstreamRejected"})
        assert again.message == first.message

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ({"error": "Bad prompt"}, "Bad prompt"),
            ({"error": {"message": "Invalid image"}}, "Invalid image"),
            ({"detail": "Not found"}, "Not found"),
        ],
    )
    def test_message_passed_through(self, body: dict[str, object], message: str) -> None:
        failure = classify_status(400, body)
        assert failure.category is ErrorCategory.UPSTREAM_REJECTED
        assert failure.message == message

    def test_generic_message_by_status(self) -> None:
        assert classify_status(502).message == "The image service is unavailable."
        assert classify_status(418).message == "Request failed with status 418"

    def test_declared_category_wins(self) -> None:
        failure = classify_status(500, {"success": False, "error": "no key", "category": "Misconfigured"})
        assert failure.category is ErrorCategory.MISCONFIGURED
        assert failure.message == "no key"

    def test_unknown_declared_category_ignored(self) -> None:
        failure = classify_status(500, {"error": "boom", "category": "Bogus"})
        assert failure.category is ErrorCategory.UPSTREAM_REJECTED

    def test_status_for(self) -> None:
        assert status_for(classify_status(429)) == 429
        assert status_for(classify_status(401, {"error": "nope"})) == 401
        assert status_for(Failure(ErrorCategory.MISCONFIGURED, "x")) == 500
        assert status_for(Failure(ErrorCategory.TIMEOUT, "x")) == 504
        assert status_for(Failure(ErrorCategory.INVALID_IMAGE, "x")) == 400


class TestNormalizeProxyResponse:
    def test_success(self) -> None:
        result = normalize_proxy_response(200, {"success": True, "imageUrl": "https://x/y.png"})
        assert result == Success(image_url="https://x/y.png")
        assert result.ok is True

    def test_success_without_url(self) -> None:
        result = normalize_proxy_response(200, {"success": True})
        assert isinstance(result, Failure)
        assert result.category is ErrorCategory.NO_IMAGE_PRODUCED

    def test_ok_status_with_failure_body(self) -> None:
        result = normalize_proxy_response(200, {"success": False, "error": "nope", "category": "NoImageProduced"})
        assert isinstance(result, Failure)
        assert result.category is ErrorCategory.NO_IMAGE_PRODUCED
        assert result.message == "nope"

    def test_error_status_classified(self) -> None:
        result = normalize_proxy_response(504, {"success": False, "error": "took too long", "category": "Timeout"})
        assert isinstance(result, Failure)
        assert result.category is ErrorCategory.TIMEOUT

    def test_non_json_error(self) -> None:
        result = normalize_proxy_response(502, None)
        assert isinstance(result, Failure)
        assert result.category is ErrorCategory.UPSTREAM_REJECTED
        assert result.message == "The image service is unavailable."

    def test_non_json_success(self) -> None:
        result = normalize_proxy_response(200, None)
        assert isinstance(result, Failure)
        assert result.category is ErrorCategory.UNKNOWN
