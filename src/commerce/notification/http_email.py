"""HTTP email adapter: Resend-style JSON API over httpx.

POSTs `{from, to, subject, text}` to `{base_url}/emails` with a bearer key.
Any 2xx counts as sent, whatever its body; other statuses come back as a
failed result. Timeouts and transport errors are raised as UpstreamError.
"""

import httpx
import structlog

from commerce.errors import UpstreamError
from commerce.notification.port import EmailPort

logger = structlog.get_logger(__name__)

DEFAULT_API_BASE = "https://api.resend.com"


class HttpEmailAdapter(EmailPort):
    def __init__(
        self,
        api_key: str,
        sender: str,
        *,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.sender = sender
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def send(self, to: str, subject: str, body: str) -> dict:
        payload = {"from": self.sender, "to": [to], "subject": subject, "text": body}
        try:
            response = self._client.post("/emails", json=payload)
        except httpx.TimeoutException as exc:
            raise UpstreamError("email", f"timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError("email", str(exc)) from exc

        if response.is_success:
            return {"message_id": _json_body(response).get("id"), "status": "sent"}

        error = _error_message(response)
        logger.warning("Email provider rejected message", status_code=response.status_code, error=error)
        return {"message_id": None, "status": "failed", "error": error}

    def close(self) -> None:
        self._client.close()


def _json_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_message(response: httpx.Response) -> str:
    body = _json_body(response)
    message = body.get("message") or body.get("error")
    if message:
        return str(message)
    return response.text[:300] or f"HTTP {response.status_code}"
