"""Relay client for Ollama-compatible /api/generate endpoints behind a tunnel."""

import asyncio
import logging

import httpx

from chatrelay.services.relay.base import BaseRelayClient, ProbeResult, RelayError, RelayErrorKind

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 10.0


def generate_url(target_url: str) -> str:
    return f"{target_url.rstrip('/')}/api/generate"


def redact_url(url: str) -> str:
    """Drop any user:password part so the URL is safe to log."""
    try:
        return str(httpx.URL(url).copy_with(username=None, password=None))
    except httpx.InvalidURL:
        return url.rpartition("@")[2]


class OllamaRelayClient(BaseRelayClient):
    """Single-shot, non-streaming relay. No retries."""

    USER_AGENT = "Mozilla/5.0 (compatible; ChatRelayBot/1.0)"

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.USER_AGENT,
            # Skip the tunnel's HTML interstitial page
            "ngrok-skip-browser-warning": "true",
        }

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _post(self, url: str, payload: dict) -> httpx.Response:
        async with self._client(self.timeout) as client:
            return await client.post(url, json=payload, headers=self._headers())

    async def generate(self, target_url: str, model: str, prompt: str) -> str:
        url = generate_url(target_url)
        payload = {"model": model, "prompt": prompt, "stream": False}

        # httpx timeouts are per read/write; wait_for bounds the call as a whole
        try:
            resp = await asyncio.wait_for(self._post(url, payload), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise RelayError(
                RelayErrorKind.TIMEOUT,
                f"AI service timed out after {self.timeout:g} seconds",
                details={"url": redact_url(url), "timeout": self.timeout},
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise RelayError(
                RelayErrorKind.NETWORK,
                "Cannot reach AI service",
                details={"url": redact_url(url), "error": str(e), "error_type": type(e).__name__},
            ) from e

        logger.debug(f"Relay response from {redact_url(url)}: {resp.status_code}")

        if not resp.is_success:
            raise RelayError(
                RelayErrorKind.BAD_STATUS,
                f"AI service responded with {resp.status_code}",
                upstream_status=resp.status_code,
                details={"url": redact_url(url), "preview": resp.text[:200]},
            )

        content_type = resp.headers.get("content-type", "")
        if "application/json" not in content_type.lower():
            # Usually the tunnel's HTML error page; never hand it to the JSON parser
            raise RelayError(
                RelayErrorKind.NON_JSON,
                "AI service returned a non-JSON response",
                upstream_status=resp.status_code,
                details={"url": redact_url(url), "content_type": content_type, "preview": resp.text[:200]},
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise RelayError(
                RelayErrorKind.INVALID_RESPONSE,
                "AI service returned malformed JSON",
                upstream_status=resp.status_code,
                details={"url": redact_url(url)},
            ) from e

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise RelayError(
                RelayErrorKind.INVALID_RESPONSE,
                "AI service response has no 'response' field",
                upstream_status=resp.status_code,
                details={"url": redact_url(url)},
            )
        return text

    async def probe(self, target_url: str) -> ProbeResult:
        timeout = min(self.timeout, PROBE_TIMEOUT_SECONDS)
        try:
            async with self._client(timeout) as client:
                resp = await asyncio.wait_for(
                    client.head(target_url, headers=self._headers()), timeout=timeout
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return ProbeResult(target_url=target_url, reachable=False, error="timeout")
        except (httpx.RequestError, httpx.InvalidURL) as e:
            return ProbeResult(target_url=target_url, reachable=False, error=str(e) or type(e).__name__)
        return ProbeResult(target_url=target_url, reachable=True, status=resp.status_code)
