"""VerifyTX eligibility API client.

Owns its own HTTP client and OAuth token state, so several instances (for
example one per test) never share credentials or tokens.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from claimshield.models.exceptions import AuthenticationError, VerificationServiceError
from claimshield.verification.gateway import EligibilityGateway, VerificationRequest
from claimshield.config.settings import Settings
from claimshield.config.request_context import get_correlation_id
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_EXPIRES_IN = 86400  # VerifyTX tokens live 24h unless told otherwise

# Connection-level failures only: the request never reached VerifyTX
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


@dataclass
class VerifyTxConfig:
    """Configuration for a VerifyTX connection."""
    client_id: str
    client_secret: str
    username: Optional[str] = None
    password: Optional[str] = None
    facility_id: Optional[str] = None
    base_url: str = "https://api.verifytx.com"
    timeout: float = 30.0
    token_ttl_seconds: int = 3300
    token_refresh_margin_seconds: int = 300

    @classmethod
    def from_settings(cls, settings: Settings) -> "VerifyTxConfig":
        if not settings.verifytx_configured:
            raise AuthenticationError(
                "VerifyTX credentials not configured: set VERIFYTX_CLIENT_ID and VERIFYTX_CLIENT_SECRET"
            )
        return cls(
            client_id=settings.verifytx_client_id,
            client_secret=settings.verifytx_client_secret,
            username=settings.verifytx_username,
            password=settings.verifytx_password,
            facility_id=settings.verifytx_facility_id,
            base_url=settings.verifytx_base_url,
            timeout=settings.verifytx_timeout_seconds,
            token_ttl_seconds=settings.verifytx_token_ttl_seconds,
            token_refresh_margin_seconds=settings.verifytx_token_refresh_margin_seconds,
        )


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "VerifyTX connection failed (retrying)",
        attempt=retry_state.attempt_number,
        error=str(exc) if exc else None,
    )


class VerifyTxClient(EligibilityGateway):
    """
    Async client for the VerifyTX REST API.

    - OAuth token fetched lazily, cached for min(token TTL, expires_in - margin)
    - Refresh-token grant tried first, full grant as fallback
    - One transparent replay after a 401 with a fresh token
    - Connection failures retried with exponential backoff; API errors never are
    """

    def __init__(
        self,
        config: VerifyTxConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the client.

        Args:
            config: Credentials and connection settings
            http_client: Pre-built client (tests pass one with a MockTransport)
            clock: Monotonic clock used for token expiry
        """
        self.config = config
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
        )
        self._clock = clock
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._token_expiry: Optional[float] = None
        self._token_lock = asyncio.Lock()
        logger.info("VerifyTX client initialized", base_url=config.base_url)

    @property
    def name(self) -> str:
        return "verifytx"

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _token_valid(self) -> bool:
        return (
            self._access_token is not None
            and self._token_expiry is not None
            and self._clock() < self._token_expiry
        )

    def invalidate_token(self) -> None:
        """Drop the cached access token; the refresh token is kept."""
        self._access_token = None
        self._token_expiry = None

    async def authenticate(self) -> str:
        """
        Return a valid bearer token, fetching one if needed.

        Returns:
            Access token

        Raises:
            AuthenticationError: If VerifyTX rejects the credentials
        """
        async with self._token_lock:
            if self._token_valid():
                return self._access_token

            if self._refresh_token:
                try:
                    return await self._request_token({
                        "grant_type": "refresh_token",
                        "refresh_token": self._refresh_token,
                        "client_id": self.config.client_id,
                        "client_secret": self.config.client_secret,
                    })
                except AuthenticationError:
                    logger.info("VerifyTX refresh token rejected, re-authenticating")
                    self._refresh_token = None

            return await self._request_token(self._grant_params())

    def _grant_params(self) -> Dict[str, str]:
        params = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        if self.config.username and self.config.password:
            params.update({
                "grant_type": "password",
                "username": self.config.username,
                "password": self.config.password,
            })
        else:
            params["grant_type"] = "client_credentials"
        return params

    async def _request_token(self, params: Dict[str, str]) -> str:
        response = await self._call(
            "POST",
            "/oauth/token",
            data=params,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if response.is_error:
            logger.error(
                "VerifyTX authentication failed",
                status=response.status_code,
                grant_type=params.get("grant_type"),
            )
            raise AuthenticationError(
                f"VerifyTX authentication failed ({response.status_code}): {response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AuthenticationError(f"Malformed VerifyTX token response: {e}") from e
        # Token fields are either top-level or wrapped as {"code": 200, "message": {...}}
        token_data = data.get("message") if isinstance(data.get("message"), dict) else data
        access_token = token_data.get("access_token")
        if not access_token:
            raise AuthenticationError("No access token received from VerifyTX")

        expires_in = int(token_data.get("expires_in") or DEFAULT_EXPIRES_IN)
        ttl = min(
            self.config.token_ttl_seconds,
            expires_in - self.config.token_refresh_margin_seconds,
        )
        self._access_token = access_token
        self._refresh_token = token_data.get("refresh_token") or self._refresh_token
        self._token_expiry = self._clock() + max(ttl, 0)

        logger.info("VerifyTX token acquired", grant_type=params.get("grant_type"), ttl_seconds=max(ttl, 0))
        return access_token

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=_log_retry,
        reraise=True
    )
    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Inner method that tenacity retries on connection failures."""
        headers = dict(kwargs.pop("headers", None) or {})
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id
        return await self._http_client.request(method, path, headers=headers, **kwargs)

    async def _call(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request, surfacing transport failures as VerificationServiceError."""
        try:
            return await self._send(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("VerifyTX request timed out", method=method, path=path, error=str(e))
            raise VerificationServiceError(504, f"VerifyTX request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error("VerifyTX unreachable", method=method, path=path, error=str(e))
            raise VerificationServiceError(503, f"VerifyTX unreachable: {e}") from e

    async def _api_request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        replay_on_unauthorized: bool = True,
    ) -> Any:
        """
        Make an authenticated API call.

        Args:
            method: HTTP method
            path: API path
            json: JSON body
            params: Query parameters
            replay_on_unauthorized: Replay once with a fresh token after a 401

        Returns:
            Decoded JSON response

        Raises:
            VerificationServiceError: On a non-success response, an unreadable body,
                or when VerifyTX cannot be reached
        """
        token = await self.authenticate()
        logger.debug("VerifyTX call", method=method, path=path)

        response = await self._call(
            method,
            path,
            json=json,
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )

        if response.status_code == 401 and replay_on_unauthorized:
            logger.warning("VerifyTX token rejected, replaying with a fresh token", path=path)
            self.invalidate_token()
            return await self._api_request(method, path, json=json, params=params, replay_on_unauthorized=False)

        if response.is_error:
            logger.error("VerifyTX API error", method=method, path=path, status=response.status_code)
            raise VerificationServiceError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            logger.error("VerifyTX returned a non-JSON body", method=method, path=path, status=response.status_code)
            raise VerificationServiceError(response.status_code, f"Malformed VerifyTX response: {e}") from e

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def verify(self, request: VerificationRequest) -> Dict[str, Any]:
        return await self._api_request("POST", "/vobs", json=request.to_payload(self.config.facility_id))

    async def reverify(self, vob_id: str) -> Dict[str, Any]:
        return await self._api_request("POST", f"/vobs/{vob_id}/reverify")

    async def export_pdf(self, vob_id: str) -> Dict[str, Any]:
        return await self._api_request("GET", f"/vobs/{vob_id}/export")

    async def search_payers(self, query: str) -> List[Dict[str, Any]]:
        """
        Search payers, falling back to the alternate listing endpoint.

        Raises:
            VerificationServiceError: The first endpoint's error if both fail
        """
        try:
            result = await self._api_request("GET", "/payers/search", params={"q": query})
        except VerificationServiceError as e:
            logger.warning("Payer search endpoint failed, trying alternate", status=e.status_code)
            try:
                result = await self._api_request("GET", "/payers", params={"search": query})
            except VerificationServiceError:
                raise e
        if isinstance(result, list):
            return result
        return result.get("data") or []

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._http_client.aclose()
