"""
Tests for VerifyTxClient using httpx.MockTransport - no network access.
"""

import json

import httpx
import pytest

from claimshield.models.exceptions import AuthenticationError, VerificationServiceError
from claimshield.verification.gateway import VerificationRequest
from claimshield.verification.verifytx_client import VerifyTxClient, VerifyTxConfig
from claimshield.config.request_context import correlation_id_var
from claimshield.config.settings import Settings


BASE_URL = "https://verifytx.test"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeVerifyTx:
    """Records requests and answers like VerifyTX."""

    def __init__(self):
        self.requests = []
        self.token_count = 0
        self.reject_next_api_call = False
        self.vob_status = 200
        self.payer_search_status = 200
        self.vob_failure = None
        self.vob_body = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/oauth/token":
            self.token_count += 1
            return httpx.Response(200, json={
                "code": 200,
                "message": {
                    "access_token": f"token-{self.token_count}",
                    "refresh_token": "refresh-abc",
                    "expires_in": 3600,
                },
            })

        if self.reject_next_api_call:
            self.reject_next_api_call = False
            return httpx.Response(401, json={"error": "expired"})

        if path == "/vobs" and request.method == "POST":
            if self.vob_failure is not None:
                raise self.vob_failure
            if self.vob_body is not None:
                return httpx.Response(200, text=self.vob_body)
            if self.vob_status != 200:
                return httpx.Response(self.vob_status, text="Payer unavailable")
            return httpx.Response(200, json={"_id": "VOB-1", "cache": {"status": "Complete"}})
        if path == "/payers/search":
            if self.payer_search_status != 200:
                return httpx.Response(self.payer_search_status, text="Not found")
            return httpx.Response(200, json={"data": [{"payer_id": "60054", "payer_name": "Aetna"}]})
        if path == "/payers":
            return httpx.Response(200, json=[{"payer_id": "62308", "payer_name": "Cigna"}])
        if path == "/vobs/VOB-1/export":
            return httpx.Response(200, json={"url": "https://files.test/VOB-1.pdf"})
        return httpx.Response(404, text="Unknown path")


@pytest.fixture
def fake_api():
    return FakeVerifyTx()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return VerifyTxConfig(
        client_id="client",
        client_secret="secret",
        username="user@example.com",
        password="pw",
        facility_id="FAC-1",
        base_url=BASE_URL,
    )


@pytest.fixture
async def client(config, fake_api, clock):
    http_client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(fake_api))
    verifytx = VerifyTxClient(config, http_client=http_client, clock=clock)
    yield verifytx
    await http_client.aclose()


@pytest.fixture
def vob_request():
    return VerificationRequest(
        first_name="Maria",
        last_name="Garcia",
        date_of_birth="1985-04-12",
        member_id="AET12345678",
        payer_id="60054",
        payer_name="Aetna",
    )


class TestAuthentication:

    async def test_password_grant_and_caching(self, client, fake_api, vob_request):
        await client.verify(vob_request)
        await client.verify(vob_request)

        token_requests = [r for r in fake_api.requests if r.url.path == "/oauth/token"]
        assert len(token_requests) == 1
        body = token_requests[0].content.decode()
        assert "grant_type=password" in body
        assert "username=user%40example.com" in body

    async def test_token_expires_after_ttl(self, client, fake_api, clock):
        first = await client.authenticate()
        clock.now += 3299
        assert await client.authenticate() == first

        clock.now += 2
        second = await client.authenticate()
        assert second != first
        refresh = [r for r in fake_api.requests if r.url.path == "/oauth/token"][-1]
        assert "grant_type=refresh_token" in refresh.content.decode()

    async def test_client_credentials_without_user(self, fake_api, clock):
        config = VerifyTxConfig(client_id="client", client_secret="secret", base_url=BASE_URL)
        async with httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(fake_api)) as http_client:
            verifytx = VerifyTxClient(config, http_client=http_client, clock=clock)
            await verifytx.authenticate()
        assert "grant_type=client_credentials" in fake_api.requests[0].content.decode()

    async def test_rejected_credentials(self, config, clock):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="invalid_client"))
        async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
            verifytx = VerifyTxClient(config, http_client=http_client, clock=clock)
            with pytest.raises(AuthenticationError):
                await verifytx.authenticate()

    async def test_replays_once_after_401(self, client, fake_api, vob_request):
        await client.authenticate()
        fake_api.reject_next_api_call = True

        result = await client.verify(vob_request)

        assert result["_id"] == "VOB-1"
        vob_calls = [r for r in fake_api.requests if r.url.path == "/vobs"]
        assert len(vob_calls) == 2
        assert vob_calls[0].headers["Authorization"] == "Bearer token-1"
        assert vob_calls[1].headers["Authorization"] == "Bearer token-2"

    def test_config_requires_credentials(self):
        with pytest.raises(AuthenticationError):
            VerifyTxConfig.from_settings(Settings(verifytx_client_id=None, verifytx_client_secret=None))


class TestOperations:

    async def test_verify_payload(self, client, fake_api, vob_request):
        await client.verify(vob_request)
        vob_call = [r for r in fake_api.requests if r.url.path == "/vobs"][0]
        body = json.loads(vob_call.content)
        assert body["first_name"] == "MARIA"
        assert body["facility"] == "FAC-1"
        assert body["client_type"] == "prospect"
        assert "email" not in body

    async def test_api_error_raises(self, client, fake_api, vob_request):
        fake_api.vob_status = 503
        with pytest.raises(VerificationServiceError) as exc_info:
            await client.verify(vob_request)
        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "Payer unavailable"

    async def test_timeout_raises_service_error(self, client, fake_api, vob_request):
        fake_api.vob_failure = httpx.ReadTimeout("read timed out")
        with pytest.raises(VerificationServiceError) as exc_info:
            await client.verify(vob_request)
        assert exc_info.value.status_code == 504
        assert "timed out" in exc_info.value.message

    async def test_transport_error_raises_service_error(self, client, fake_api, vob_request):
        fake_api.vob_failure = httpx.RemoteProtocolError("connection reset")
        with pytest.raises(VerificationServiceError) as exc_info:
            await client.verify(vob_request)
        assert exc_info.value.status_code == 503

    async def test_non_json_body_raises_service_error(self, client, fake_api, vob_request):
        fake_api.vob_body = "<html>maintenance</html>"
        with pytest.raises(VerificationServiceError) as exc_info:
            await client.verify(vob_request)
        assert exc_info.value.status_code == 200
        assert "Malformed" in exc_info.value.message

    async def test_payer_search(self, client):
        payers = await client.search_payers("aetna")
        assert payers == [{"payer_id": "60054", "payer_name": "Aetna"}]

    async def test_payer_search_falls_back(self, client, fake_api):
        fake_api.payer_search_status = 404
        payers = await client.search_payers("cigna")
        assert payers[0]["payer_name"] == "Cigna"
        listing = [r for r in fake_api.requests if r.url.path == "/payers"][0]
        assert listing.url.params["search"] == "cigna"

    async def test_export_pdf(self, client):
        assert await client.export_pdf("VOB-1") == {"url": "https://files.test/VOB-1.pdf"}

    async def test_correlation_id_forwarded(self, client, fake_api):
        token = correlation_id_var.set("corr-123")
        try:
            await client.search_payers("aetna")
        finally:
            correlation_id_var.reset(token)
        assert fake_api.requests[-1].headers["X-Correlation-ID"] == "corr-123"
