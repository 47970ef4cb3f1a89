"""
HTTP clients for the remote collaborators: the meetings archive and the
intelligence generation service.

Both raise ServiceUnavailableError when not configured or when the remote
call fails, so callers can treat "unavailable" uniformly.
"""
from typing import Any, Dict, List, Optional

import httpx
import structlog

from cadence.infrastructure.exceptions import ServiceUnavailableError
from cadence.models.sources import Meeting

logger = structlog.get_logger(__name__)


class _RemoteService:
    service_name = "remote"

    def __init__(
        self,
        base_url: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str) -> Any:
        if not self._base_url:
            raise ServiceUnavailableError(self.service_name, f"{self.service_name} URL is not configured")

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.request(method, path)
                resp.raise_for_status()
                return resp.json() if resp.content else None
        except httpx.HTTPError as e:
            logger.warning(
                "collaborator_request_failed",
                service=self.service_name,
                path=path,
                error=str(e),
            )
            raise ServiceUnavailableError(self.service_name, str(e)) from e


class HttpMeetingSource(_RemoteService):
    """Meeting groups from the meetings archive service."""
    service_name = "meetings"

    async def list_meetings(self) -> List[Meeting]:
        payload = await self._request("GET", "/meetings")
        items: List[Dict[str, Any]] = payload.get("meetings", []) if isinstance(payload, dict) else payload or []
        return [Meeting.model_validate(item) for item in items]


class HttpIntelligenceGenerator(_RemoteService):
    """Triggers analysis generation on the intelligence service."""
    service_name = "intelligence"

    async def generate_ecosystem_insight(self) -> Any:
        return await self._request("POST", "/generate/ecosystem-insight")

    async def generate_dreamstate_predictions(self) -> Any:
        return await self._request("POST", "/generate/dreamstate-predictions")

    async def generate_creative_intelligence(self) -> Any:
        return await self._request("POST", "/generate/creative-intelligence")
