import json
import logging
from typing import Any, Dict, Optional

import httpx

from portalapi.config import Settings
from portalapi.schemas.enrollment import EnrollmentResult

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Başarıyla kaydedildi"
CONNECTION_ERROR_MESSAGE = "Bağlantı hatası"
GENERIC_ERROR_MESSAGE = "Hata oluştu"
CONFIG_MISSING_MESSAGE = "API configuration missing (API Key/Secret)"


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class EnrollmentClient:
    """Partner enrollment API (one POST per student)"""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = settings.ENROLLMENT_API_URL
        self._api_key = settings.ENROLLMENT_API_KEY
        self._api_secret = settings.ENROLLMENT_API_SECRET
        self._timeout = httpx.Timeout(settings.ENROLLMENT_TIMEOUT_SECONDS, connect=5.0)
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._api_secret)

    async def register_student(
        self, payload: Dict[str, Any], idempotency_key: str
    ) -> EnrollmentResult:
        """POST one student; never raises for upstream failures.

        ``payload`` is the partner body: firstName, lastName, email, phone,
        productIds.
        """
        if not self.configured:
            return EnrollmentResult(success=False, message=CONFIG_MISSING_MESSAGE)

        headers = {
            "Content-Type": "application/json",
            "X-API-KEY": self._api_key,
            "X-API-SECRET": self._api_secret,
            "Idempotency-Key": idempotency_key,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._url, json=payload, headers=headers)
        except httpx.RequestError as exc:
            logger.warning(f"Enrollment API connection error: {exc}")
            return EnrollmentResult(
                success=False, message=CONNECTION_ERROR_MESSAGE, retryable=True
            )

        logger.info(f"Enrollment API POST {self._url} -> {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            logger.error(
                f"Enrollment API returned a non-JSON body ({response.status_code}): "
                f"{response.text[:200]}"
            )
            return EnrollmentResult(
                success=False,
                message=f"API Sunucu Hatası (HTML döndü: {response.status_code})",
                retryable=_is_retryable(response.status_code),
            )

        if not isinstance(data, dict):
            data = {}

        if response.is_success and data.get("success"):
            external_id = (data.get("data") or {}).get("id") or "integrated"
            return EnrollmentResult(
                success=True, message=SUCCESS_MESSAGE, external_id=str(external_id)
            )

        message = data.get("message") or data.get("error")
        if not message and data.get("errors"):
            message = json.dumps(data["errors"], ensure_ascii=False)
        return EnrollmentResult(
            success=False,
            message=str(message or GENERIC_ERROR_MESSAGE),
            retryable=_is_retryable(response.status_code),
        )
