"""
Provisioning pipeline for the assistant and its resources.

Steps run strictly in order, each one rerunnable:
1. Resolve and health-check the public base URL of this service
2. Reuse or create the assistant (by name)
3. Reuse, update or create each tool (by name) and attach it
4. Reuse, update or create each knowledge source (by name) and attach it
5. Optionally reuse or create the call-analytics service and its operators
6. Write the generated identifiers into the local .env file

A failing step raises ProvisioningError naming the step; nothing is rolled
back, and rerunning picks up the resources that already exist.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import httpx
import structlog
from dotenv import set_key

from src.config import Settings, settings as default_settings
from src.core.exceptions import ProvisioningError
from src.provisioning.descriptors import OPERATORS, TOOLS, KnowledgeDescriptor, ToolDescriptor, knowledge_sources
from src.services.management_client import ManagementClient

logger = structlog.get_logger(__name__)

T = TypeVar("T")

CLOUDFLARED_METRICS_URL = "http://127.0.0.1:20241/metrics"
NGROK_TUNNELS_URL = "http://127.0.0.1:4040/api/tunnels"
CLOUDFLARED_URL_PATTERN = re.compile(r"https://[a-z0-9-]+\.trycloudflare\.com")


@dataclass
class ProvisioningResult:
    base_url: str
    assistant_id: str | None = None
    tool_ids: dict[str, str] = field(default_factory=dict)
    knowledge_ids: dict[str, str] = field(default_factory=dict)
    intelligence_service_sid: str | None = None
    operator_sids: dict[str, str] = field(default_factory=dict)


def _resource_id(resource: dict[str, Any]) -> str:
    """Assistants v1 resources carry ``id``; Intelligence v2 resources carry ``sid``."""
    resource_id = resource.get("id") or resource.get("sid")
    if not resource_id:
        raise ProvisioningError(f"Management API response has no id: {resource}")
    return str(resource_id)


def _tool_drifted(existing: dict[str, Any], payload: dict[str, Any]) -> bool:
    current = existing.get("meta") or {}
    wanted = payload["meta"]
    return (
        existing.get("description") != payload["description"]
        or current.get("url") != wanted["url"]
        or str(current.get("method", "")).upper() != wanted["method"]
        or current.get("input_schema") != wanted["input_schema"]
    )


def _knowledge_drifted(existing: dict[str, Any], payload: dict[str, Any]) -> bool:
    current = existing.get("knowledge_source_details") or {}
    return (
        existing.get("description") != payload["description"]
        or str(existing.get("type", "")).lower() != payload["type"].lower()
        or current.get("source") != payload["knowledge_source_details"]["source"]
    )


class ProvisioningOrchestrator:
    """
    Runs the provisioning pipeline against the management API.

    Usage:
        orchestrator = ProvisioningOrchestrator()
        try:
            result = await orchestrator.deploy(with_analytics=True)
        finally:
            await orchestrator.close()
    """

    def __init__(
        self,
        config: Settings | None = None,
        client: ManagementClient | None = None,
        http_client: httpx.AsyncClient | None = None,
        env_file: str | Path | None = None,
    ):
        self.settings = config or default_settings
        self._client = client
        self.http = http_client or httpx.AsyncClient(timeout=self.settings.management_timeout)
        self.env_file = Path(env_file or self.settings.env_file_path)

    @property
    def client(self) -> ManagementClient:
        # Created on demand so redeploy works without management credentials.
        if self._client is None:
            self._client = ManagementClient(self.settings)
        return self._client

    async def _step(self, name: str, action: Callable[[], Awaitable[T]]) -> T:
        logger.info("provisioning_step_started", step=name)
        try:
            result = await action()
        except ProvisioningError as exc:
            exc.step = exc.step or name
            logger.error("provisioning_step_failed", step=name, error=exc.message)
            raise
        except httpx.HTTPError as exc:
            logger.error("provisioning_step_failed", step=name, error=str(exc))
            raise ProvisioningError(f"{name} failed: {exc}", step=name) from exc
        logger.info("provisioning_step_completed", step=name)
        return result

    # ===== Step 1: backend =====

    async def detect_tunnel_url(self) -> str | None:
        """Public URL of a local cloudflared or ngrok tunnel, if one is running."""
        try:
            response = await self.http.get(CLOUDFLARED_METRICS_URL, timeout=3.0)
            if response.status_code == 200:
                match = CLOUDFLARED_URL_PATTERN.search(response.text)
                if match:
                    return match.group(0)
        except httpx.HTTPError:
            logger.debug("cloudflared_not_detected")

        try:
            response = await self.http.get(NGROK_TUNNELS_URL, timeout=3.0)
            if response.status_code == 200:
                tunnels = response.json().get("tunnels", [])
                https_tunnel = next((t for t in tunnels if t.get("proto") == "https"), None)
                if https_tunnel and https_tunnel.get("public_url"):
                    return https_tunnel["public_url"].rstrip("/")
        except (httpx.HTTPError, ValueError):
            logger.debug("ngrok_not_detected")

        return None

    async def deploy_backend(self) -> str:
        """Resolve the public base URL and verify the service answers on it."""
        base_url = self.settings.public_base_url or await self.detect_tunnel_url()
        if not base_url:
            raise ProvisioningError(
                "No public URL for the backend. Set PUBLIC_BASE_URL or start cloudflared/ngrok.",
                step="deploy_backend",
            )
        base_url = base_url.rstrip("/")

        try:
            response = await self.http.get(f"{base_url}/health")
        except httpx.HTTPError as exc:
            raise ProvisioningError(f"Backend at {base_url} is unreachable: {exc}", step="deploy_backend") from exc
        if response.status_code != 200:
            raise ProvisioningError(
                f"Backend health check at {base_url}/health returned {response.status_code}",
                step="deploy_backend",
            )

        logger.info("backend_reachable", base_url=base_url)
        return base_url

    # ===== Step 2: assistant =====

    def load_prompt(self) -> str:
        path = Path(self.settings.assistant_prompt_path)
        if not path.is_file():
            raise ProvisioningError(f"Assistant prompt not found at {path}", step="assistant")
        return path.read_text(encoding="utf-8")

    async def ensure_assistant(self) -> str:
        name = self.settings.assistant_name
        for assistant in await self.client.list_assistants():
            if assistant.get("name") == name:
                assistant_id = _resource_id(assistant)
                logger.info("assistant_reused", assistant_id=assistant_id, name=name)
                return assistant_id

        created = await self.client.create_assistant({"name": name, "personality_prompt": self.load_prompt()})
        assistant_id = _resource_id(created)
        logger.info("assistant_created", assistant_id=assistant_id, name=name)
        return assistant_id

    # ===== Step 3: tools =====

    async def ensure_tools(
        self,
        assistant_id: str,
        base_url: str,
        tools: tuple[ToolDescriptor, ...] = TOOLS,
    ) -> dict[str, str]:
        existing = {tool.get("name"): tool for tool in await self.client.list_tools()}
        attached = {_resource_id(tool) for tool in await self.client.list_assistant_tools(assistant_id)}

        tool_ids: dict[str, str] = {}
        for descriptor in tools:
            payload = descriptor.payload(base_url)
            current = existing.get(descriptor.name)
            if current is None:
                tool_id = _resource_id(await self.client.create_tool(payload))
                logger.info("tool_created", tool=descriptor.name, tool_id=tool_id)
            else:
                tool_id = _resource_id(current)
                if _tool_drifted(current, payload):
                    await self.client.update_tool(tool_id, payload)
                    logger.info("tool_updated", tool=descriptor.name, tool_id=tool_id)
                else:
                    logger.info("tool_reused", tool=descriptor.name, tool_id=tool_id)

            if tool_id not in attached:
                await self.client.attach_tool(assistant_id, tool_id)
                logger.info("tool_attached", tool=descriptor.name, tool_id=tool_id, assistant_id=assistant_id)
            tool_ids[descriptor.name] = tool_id
        return tool_ids

    # ===== Step 4: knowledge =====

    async def ensure_knowledge(
        self,
        assistant_id: str,
        base_url: str,
        sources: list[KnowledgeDescriptor] | None = None,
    ) -> dict[str, str]:
        sources = knowledge_sources(self.settings) if sources is None else sources
        existing = {item.get("name"): item for item in await self.client.list_knowledge()}
        attached = {_resource_id(item) for item in await self.client.list_assistant_knowledge(assistant_id)}

        knowledge_ids: dict[str, str] = {}
        for descriptor in sources:
            payload = descriptor.payload(base_url)
            current = existing.get(descriptor.name)
            if current is None:
                knowledge_id = _resource_id(await self.client.create_knowledge(payload))
                logger.info("knowledge_created", knowledge=descriptor.name, knowledge_id=knowledge_id)
            else:
                knowledge_id = _resource_id(current)
                if _knowledge_drifted(current, payload):
                    await self.client.update_knowledge(knowledge_id, payload)
                    logger.info("knowledge_updated", knowledge=descriptor.name, knowledge_id=knowledge_id)
                else:
                    logger.info("knowledge_reused", knowledge=descriptor.name, knowledge_id=knowledge_id)

            if knowledge_id not in attached:
                await self.client.attach_knowledge(assistant_id, knowledge_id)
                logger.info("knowledge_attached", knowledge=descriptor.name, knowledge_id=knowledge_id)
            knowledge_ids[descriptor.name] = knowledge_id
        return knowledge_ids

    # ===== Step 5: call analytics =====

    async def ensure_call_analytics(self) -> tuple[str, dict[str, str]]:
        unique_name = self.settings.intelligence_service_name
        service = next(
            (s for s in await self.client.list_services() if s.get("unique_name") == unique_name),
            None,
        )
        if service is None:
            service = await self.client.create_service(unique_name)
            logger.info("intelligence_service_created", service_sid=_resource_id(service), unique_name=unique_name)
        service_sid = _resource_id(service)

        existing = {op.get("friendly_name"): op for op in await self.client.list_custom_operators()}
        attached = set(await self.client.list_service_operators(service_sid))

        operator_sids: dict[str, str] = {}
        for descriptor in OPERATORS:
            operator = existing.get(descriptor.friendly_name)
            if operator is None:
                operator = await self.client.create_custom_operator(
                    descriptor.friendly_name, descriptor.operator_type, descriptor.config()
                )
                logger.info("operator_created", operator=descriptor.friendly_name, operator_sid=_resource_id(operator))
            operator_sid = _resource_id(operator)

            if operator_sid not in attached:
                await self.client.attach_operator(service_sid, operator_sid)
                logger.info("operator_attached", operator_sid=operator_sid, service_sid=service_sid)
            operator_sids[descriptor.friendly_name] = operator_sid
        return service_sid, operator_sids

    # ===== Step 6: persist =====

    def persist(self, values: dict[str, str | None]) -> None:
        """Write generated identifiers into the .env file, keeping other entries."""
        self.env_file.parent.mkdir(parents=True, exist_ok=True)
        self.env_file.touch(exist_ok=True)
        for key, value in values.items():
            if value:
                set_key(str(self.env_file), key, value, quote_mode="never")
        logger.info("configuration_persisted", env_file=str(self.env_file), keys=[k for k, v in values.items() if v])

    # ===== Pipelines =====

    async def deploy(self, with_analytics: bool = False) -> ProvisioningResult:
        base_url = await self._step("deploy_backend", self.deploy_backend)
        result = ProvisioningResult(base_url=base_url)

        result.assistant_id = await self._step("assistant", self.ensure_assistant)
        result.tool_ids = await self._step("tools", lambda: self.ensure_tools(result.assistant_id, base_url))
        result.knowledge_ids = await self._step(
            "knowledge", lambda: self.ensure_knowledge(result.assistant_id, base_url)
        )
        if with_analytics:
            result.intelligence_service_sid, result.operator_sids = await self._step(
                "call_analytics", self.ensure_call_analytics
            )

        async def persist() -> None:
            self.persist({
                "PUBLIC_BASE_URL": result.base_url,
                "ASSISTANT_ID": result.assistant_id,
                "INTELLIGENCE_SERVICE_SID": result.intelligence_service_sid,
            })

        await self._step("persist", persist)
        logger.info(
            "provisioning_completed",
            assistant_id=result.assistant_id,
            tools=len(result.tool_ids),
            knowledge=len(result.knowledge_ids),
            intelligence_service_sid=result.intelligence_service_sid,
        )
        return result

    async def redeploy(self) -> ProvisioningResult:
        """Re-resolve the backend URL only and persist it."""
        base_url = await self._step("deploy_backend", self.deploy_backend)

        async def persist() -> None:
            self.persist({"PUBLIC_BASE_URL": base_url})

        await self._step("persist", persist)
        return ProvisioningResult(base_url=base_url)

    async def close(self) -> None:
        await self.http.aclose()
        if self._client is not None:
            await self._client.close()
