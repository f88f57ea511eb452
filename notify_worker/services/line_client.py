"""
Delivery Client
Pushes text messages to one LINE group through the Messaging API
"""
from typing import Optional

import httpx

from notify_worker.core.config import Settings
from notify_worker.core.errors import ConfigurationError, DeliveryError
from notify_worker.core.setup_logger import worker_logger
from notify_worker.core.logger import debug

# Only this much of an error response body is kept on the exception
MAX_ERROR_BODY = 1000


def is_retryable(err: DeliveryError) -> bool:
    """
    Transient failures: no response at all, 429, or any 5xx
    Everything else (400, 401, 403, 404 ...) is permanent
    """
    if err.status_code is None:
        return True
    return err.status_code == 429 or 500 <= err.status_code <= 599


class LinePushClient:
    def __init__(
            self,
            channel_access_token: str,
            group_id: str,
            api_url: str = "https://api.line.me/v2/bot/message/push",
            timeout: float = 10.0,
            transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not channel_access_token or not group_id:
            raise ConfigurationError(
                "LINE config missing (LINE_CHANNEL_ACCESS_TOKEN / LINE_GROUP_ID)"
            )
        self.channel_access_token = channel_access_token
        self.group_id = group_id
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        return cls(
            channel_access_token=(settings.LINE_CHANNEL_ACCESS_TOKEN or "").strip(),
            group_id=(settings.LINE_GROUP_ID or "").strip(),
            api_url=settings.LINE_API_URL,
            timeout=settings.LINE_PUSH_TIMEOUT,
            transport=transport,
        )

    async def push_text(self, text: str) -> None:
        """
        Send one text message to the configured group

        Raises:
            DeliveryError: non-2xx response (status_code set), or any httpx
                failure before a usable response such as a timeout or an
                undecodable body (status_code None)
        """
        body = {
            "to": self.group_id,
            "messages": [{"type": "text", "text": text}],
        }
        headers = {"Authorization": f"Bearer {self.channel_access_token}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryError(
                f"LINE API request failed ({type(e).__name__}): {e}"
            ) from e

        if not response.is_success:
            response_body = response.text[:MAX_ERROR_BODY]
            raise DeliveryError(
                f"LINE API {response.status_code}: {response_body}",
                status_code=response.status_code,
                body=response_body,
            )

        debug(worker_logger, "LINE push accepted", context={
            "status_code": response.status_code,
            "text_length": len(text),
        })
