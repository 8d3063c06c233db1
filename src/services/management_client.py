"""
HTTP client for the Twilio AI Assistants and Voice Intelligence APIs.

This module provides the management-plane calls the provisioning CLI needs:
- Assistants, tools and knowledge sources (Assistants v1, JSON bodies)
- Call-analytics services and custom operators (Intelligence v2, form bodies)
- Attaching tools/knowledge to assistants and operators to services

Design decisions:
- httpx.AsyncClient with HTTP basic auth (account SID / auth token)
- Tenacity for exponential backoff, only on rate limiting (429)
- Empty bodies (204 No Content) are successes and parse to {}
- List calls follow meta.next_page_url so name lookups see every resource
"""

import json
from typing import Any, AsyncIterator

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import Settings, settings as default_settings
from src.core.exceptions import ConfigurationError, ManagementAPIError, ManagementRateLimitError

logger = structlog.get_logger(__name__)


class ManagementClient:
    """
    Async HTTP client for the assistant management APIs.

    Usage:
        client = ManagementClient()
        try:
            assistants = await client.list_assistants()
        finally:
            await client.close()

    Configuration:
        Requires TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN
    """

    def __init__(self, config: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        """
        Raises:
            ConfigurationError: If Twilio credentials are not configured
        """
        self.settings = config or default_settings
        if not self.settings.twilio_account_sid or not self.settings.twilio_auth_token:
            raise ConfigurationError(
                "Twilio credentials not configured - set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN"
            )

        self.assistants_url = self.settings.assistants_base_url.rstrip("/")
        self.intelligence_url = self.settings.intelligence_base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            auth=(self.settings.twilio_account_sid, self.settings.twilio_auth_token),
            timeout=self.settings.management_timeout,
            transport=transport,
        )
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=30)

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
        form_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make a management API request, retrying rate-limited calls.

        Retries are capped by MANAGEMENT_MAX_RETRIES from this client's settings.
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ManagementRateLimitError),
            stop=stop_after_attempt(self.settings.management_max_retries + 1),
            wait=self.retry_wait,
            reraise=True,
        )
        return await retrying(self._send, method, url, params, json_data, form_data)

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
        form_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Send one management API request.

        Raises:
            ManagementRateLimitError: 429, retried by _request
            ManagementAPIError: any other error response or transport failure
        """
        try:
            response = await self.client.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                data=form_data,
            )
        except httpx.RequestError as e:
            raise ManagementAPIError(f"{method} {url} failed: {e}") from e

        if response.status_code == 429:
            logger.warning("management_api_rate_limited", method=method, url=url)
            raise ManagementRateLimitError(
                f"Rate limit exceeded on {method} {url}",
                status_code=429,
                body=response.text[:500],
            )
        if response.is_error:
            raise ManagementAPIError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                body=response.text[:500],
            )

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def _paginate(self, url: str, key: str) -> AsyncIterator[dict[str, Any]]:
        next_url: str | None = url
        while next_url:
            page = await self._request("GET", next_url)
            for item in page.get(key, []):
                yield item
            next_url = (page.get("meta") or {}).get("next_page_url")

    async def _collect(self, url: str, key: str) -> list[dict[str, Any]]:
        return [item async for item in self._paginate(url, key)]

    # ===== Assistants =====

    async def list_assistants(self) -> list[dict[str, Any]]:
        return await self._collect(f"{self.assistants_url}/Assistants", "assistants")

    async def create_assistant(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{self.assistants_url}/Assistants", json_data=payload)

    # ===== Tools =====

    async def list_tools(self) -> list[dict[str, Any]]:
        return await self._collect(f"{self.assistants_url}/Tools", "tools")

    async def create_tool(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{self.assistants_url}/Tools", json_data=payload)

    async def update_tool(self, tool_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", f"{self.assistants_url}/Tools/{tool_id}", json_data=payload)

    async def list_assistant_tools(self, assistant_id: str) -> list[dict[str, Any]]:
        return await self._collect(f"{self.assistants_url}/Assistants/{assistant_id}/Tools", "tools")

    async def attach_tool(self, assistant_id: str, tool_id: str) -> dict[str, Any]:
        return await self._request("POST", f"{self.assistants_url}/Assistants/{assistant_id}/Tools/{tool_id}")

    # ===== Knowledge =====

    async def list_knowledge(self) -> list[dict[str, Any]]:
        return await self._collect(f"{self.assistants_url}/Knowledge", "knowledge")

    async def create_knowledge(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{self.assistants_url}/Knowledge", json_data=payload)

    async def update_knowledge(self, knowledge_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", f"{self.assistants_url}/Knowledge/{knowledge_id}", json_data=payload)

    async def list_assistant_knowledge(self, assistant_id: str) -> list[dict[str, Any]]:
        return await self._collect(f"{self.assistants_url}/Assistants/{assistant_id}/Knowledge", "knowledge")

    async def attach_knowledge(self, assistant_id: str, knowledge_id: str) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self.assistants_url}/Assistants/{assistant_id}/Knowledge/{knowledge_id}"
        )

    # ===== Voice Intelligence =====

    async def list_services(self) -> list[dict[str, Any]]:
        return await self._collect(f"{self.intelligence_url}/Services", "services")

    async def create_service(self, unique_name: str) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self.intelligence_url}/Services", form_data={"UniqueName": unique_name}
        )

    async def list_custom_operators(self) -> list[dict[str, Any]]:
        return await self._collect(f"{self.intelligence_url}/Operators/Custom", "operators")

    async def create_custom_operator(
        self,
        friendly_name: str,
        operator_type: str,
        config: dict[str, Any],
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{self.intelligence_url}/Operators/Custom",
            form_data={
                "FriendlyName": friendly_name,
                "OperatorType": operator_type,
                "Config": json.dumps(config),
            },
        )

    async def list_service_operators(self, service_sid: str) -> list[str]:
        attachments = await self._request("GET", f"{self.intelligence_url}/Services/{service_sid}/Operators")
        return list(attachments.get("operator_sids") or [])

    async def attach_operator(self, service_sid: str, operator_sid: str) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self.intelligence_url}/Services/{service_sid}/Operators/{operator_sid}"
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self.client.aclose()
