"""Tests for pincode lookup with caching and retries."""

import httpx
import pytest

from conftest import FakeTextApi
from microapis.api.dependencies import Services
from microapis.exceptions import InvalidInputError, NotFoundError, UpstreamError
from microapis.services.pincode import PincodeService, _is_transient


@pytest.fixture
def service(services: Services) -> PincodeService:
    return services.pincode


class TestValidation:
    """Tests for pincode format checks."""

    @pytest.mark.parametrize("pincode", ["12345", "1234567", "abcdef", "11000a", ""])
    def test_rejects_malformed(
        self, service: PincodeService, text_api: FakeTextApi, pincode: str
    ) -> None:
        with pytest.raises(InvalidInputError, match="6-digit"):
            service.lookup(pincode)
        assert text_api.prompts == []


class TestLookup:
    """Tests for resolution, caching, and error mapping."""

    def test_resolves_and_caches(self, service: PincodeService, text_api: FakeTextApi) -> None:
        text_api.replies["110001"] = {"city": "New Delhi", "state": "Delhi"}

        first = service.lookup("110001")
        second = service.lookup("110001")

        assert (first.city, first.state, first.cached) == ("New Delhi", "Delhi", False)
        assert (second.city, second.state, second.cached) == ("New Delhi", "Delhi", True)
        assert len(text_api.prompts) == 1

    def test_fenced_reply(self, service: PincodeService, text_api: FakeTextApi) -> None:
        text_api.replies["400001"] = httpx.Response(
            200, text='```json\n{"city": "Mumbai", "state": "Maharashtra"}\n```'
        )
        assert service.lookup("400001").city == "Mumbai"

    def test_invalid_pincode_reported_upstream(
        self, service: PincodeService, text_api: FakeTextApi
    ) -> None:
        text_api.replies["999999"] = {"error": "Invalid pincode"}
        with pytest.raises(NotFoundError, match="Invalid pincode"):
            service.lookup("999999")
        assert "pincode:999999" not in service.cache

    def test_missing_fields(self, service: PincodeService, text_api: FakeTextApi) -> None:
        text_api.replies["560001"] = {"city": "Bengaluru"}
        with pytest.raises(UpstreamError, match="missing city or state"):
            service.lookup("560001")

    def test_retries_transient_failures(
        self, service: PincodeService, text_api: FakeTextApi
    ) -> None:
        calls = 0

        def flaky(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise httpx.ConnectError("reset", request=request)
            return httpx.Response(200, json={"city": "Chennai", "state": "Tamil Nadu"})

        text_api.replies["600001"] = flaky
        assert service.lookup("600001").state == "Tamil Nadu"
        assert calls == 3

    def test_gives_up_after_max_retries(
        self, service: PincodeService, text_api: FakeTextApi
    ) -> None:
        text_api.replies["700001"] = httpx.Response(503)
        with pytest.raises(UpstreamError, match="Failed to fetch location data"):
            service.lookup("700001")
        assert len(text_api.prompts) == service.config.max_retries + 1

    def test_client_errors_not_retried(
        self, service: PincodeService, text_api: FakeTextApi
    ) -> None:
        text_api.replies["700001"] = httpx.Response(400)
        with pytest.raises(UpstreamError):
            service.lookup("700001")
        assert len(text_api.prompts) == 1

    def test_unparseable_reply(self, service: PincodeService, text_api: FakeTextApi) -> None:
        text_api.replies["800001"] = httpx.Response(200, text="no idea")
        with pytest.raises(UpstreamError):
            service.lookup("800001")


class TestIsTransient:
    """Tests for the retry predicate."""

    def test_classification(self) -> None:
        request = httpx.Request("POST", "https://llm.test/")

        def status_error(code: int) -> httpx.HTTPStatusError:
            response = httpx.Response(code, request=request)
            return httpx.HTTPStatusError("status", request=request, response=response)

        assert _is_transient(httpx.ReadTimeout("slow", request=request)) is True
        assert _is_transient(status_error(502)) is True
        assert _is_transient(status_error(404)) is False
        assert _is_transient(ValueError("nope")) is False
