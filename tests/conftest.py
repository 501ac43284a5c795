import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from momo_gateway.main import create_app
from momo_gateway.providers.registry import build_registry
from momo_gateway.service import MobileMoneyService
from momo_gateway.settings import Settings


class ProviderStub:
    """
    Canned provider answers keyed by (method, scheme://host/path).
    Every request is recorded; unknown routes answer 404.
    """

    def __init__(self):
        self.routes: Dict[tuple, Dict[str, Any]] = {}
        self.calls: List[httpx.Request] = []

    def on(self, method: str, url: str, json: Any = None, status_code: int = 200,
           raises: Optional[type] = None, text: Optional[str] = None) -> "ProviderStub":
        self.routes[(method, url)] = {"json": json, "status_code": status_code, "raises": raises, "text": text}
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, f"{request.url.scheme}://{request.url.host}{request.url.path}")
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, json={"code": "NOT_FOUND", "message": "Route inconnue"})
        if route["raises"] is not None:
            raise route["raises"]("stubbed transport failure", request=request)
        if route["text"] is not None:
            return httpx.Response(route["status_code"], text=route["text"])
        return httpx.Response(route["status_code"], json=route["json"])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, method: str, url: str) -> List[httpx.Request]:
        return [r for r in self.calls
                if r.method == method and f"{r.url.scheme}://{r.url.host}{r.url.path}" == url]

    @staticmethod
    def payload(request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content)


def make_settings(**overrides) -> Settings:
    values = dict(
        MTN_BASE_URL="https://mtn.test",
        MTN_API_KEY="mtn-key",
        MTN_MERCHANT_CODE="MTN001",
        ORANGE_BASE_URL="https://orange.test",
        ORANGE_API_KEY="orange-key",
        ORANGE_MERCHANT_CODE="OM001",
        ORANGE_SECRET_KEY="orange-secret",
        WAVE_BASE_URL="https://wave.test",
        WAVE_API_KEY="wave-key",
        WAVE_MERCHANT_CODE="WAVE001",
        WAVE_SECRET_KEY="wave-secret",
        HTTP_RETRY_MAX_ATTEMPTS=3,
        HTTP_RETRY_BACKOFF_SEC=0,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def stub() -> ProviderStub:
    return ProviderStub()


@pytest.fixture
def registry(test_settings, stub):
    return build_registry(test_settings, transport=stub.transport, strict=True)


@pytest.fixture
def service(registry) -> MobileMoneyService:
    return MobileMoneyService(registry)


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as c:
        yield c
