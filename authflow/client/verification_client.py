"""
Verification Service Client
---------------------------
The three calls the workflow makes against the storefront backend:

    send_code(flow, identifier)                      POST flow.send_path
    confirm_code(flow, identifier, code)             POST flow.complete_path
    finalize(flow, identifier, code, new_secret)     POST flow.complete_path

Every call resolves to a VerificationResult; nothing raises for transport or
server failures. Server replies look like {"success": bool, "message": str}
(non-2xx replies carry the same shape), and the message text is turned into an
ErrorKind here so callers never compare wording.
"""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

import httpx

from authflow.settings import settings
from authflow.core.errors import ErrorKind, VerificationResult, classify_message, parse_error_kind
from authflow.core.flows import FlowDescriptor
from authflow.observability.logging import log


class VerificationClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        cookies: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.VERIFY_SERVICE_URL).rstrip("/")
        self.timeout = float(timeout if timeout is not None else settings.VERIFY_TIMEOUT_SEC)
        self._cookies = dict(cookies or {})
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                cookies=self._cookies,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send_code(self, flow: FlowDescriptor, identifier: str) -> VerificationResult:
        return await self._post(flow, "send", flow.send_path, {"email": identifier})

    async def confirm_code(self, flow: FlowDescriptor, identifier: str, code: str) -> VerificationResult:
        return await self._post(flow, "confirm", flow.complete_path, {"email": identifier, "otp": code})

    async def finalize(
        self, flow: FlowDescriptor, identifier: str, code: str, new_secret: str
    ) -> VerificationResult:
        payload = {"email": identifier, "otp": code, "newPassword": new_secret}
        return await self._post(flow, "finalize", flow.complete_path, payload)

    async def _post(self, flow: FlowDescriptor, action: str, path: str, payload: Dict[str, Any]) -> VerificationResult:
        start = time.time()
        try:
            resp = await self._http().post(path, json=payload)
        except httpx.HTTPError as e:
            log(
                event="verify_call_exception",
                flow=flow.name,
                action=action,
                errorType=type(e).__name__,
                error=str(e)[:300],
                elapsedMs=int((time.time() - start) * 1000),
            )
            return VerificationResult.failed(ErrorKind.TRANSIENT, "Network error. Please try again.")

        result = _interpret(resp)
        log(
            event="verify_call_done",
            flow=flow.name,
            action=action,
            statusCode=int(resp.status_code),
            success=result.success,
            errorKind=result.error_kind.value if result.error_kind else None,
            elapsedMs=int((time.time() - start) * 1000),
        )
        return result


def _interpret(resp: httpx.Response) -> VerificationResult:
    try:
        data = resp.json()
    except ValueError:
        data = None

    if not isinstance(data, dict) or not isinstance(data.get("success"), bool):
        return VerificationResult.failed(
            ErrorKind.TRANSIENT, f"Unexpected response from server ({resp.status_code})"
        )

    message = data.get("message") if isinstance(data.get("message"), str) else ""

    if data["success"] and 200 <= resp.status_code < 300:
        return VerificationResult.ok(message)

    kind = parse_error_kind(data.get("errorKind")) or classify_message(message)
    return VerificationResult.failed(kind, message)
