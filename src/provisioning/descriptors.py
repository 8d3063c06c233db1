"""
Tool, knowledge and operator definitions registered with the assistant.

Each tool points at one route of this service. Input schemas are generated
from the pydantic models the routes validate with, so the assistant is told
exactly what the handler accepts.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from src.config import Settings
from src.schemas.tools import (
    CallScoreResult,
    OrderLookupTool,
    PlaceOrderTool,
    ReturnOrderTool,
    SurveyTool,
    tool_input_schema,
)

TOOL_TYPE = "WEBHOOK"
KNOWLEDGE_TYPE = "Web"
OPERATOR_TYPE = "PromptUserDefined"

EMPTY_INPUT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    method: str
    path: str
    input_model: type[BaseModel] | None = None

    def input_schema(self) -> dict[str, Any]:
        if self.input_model is None:
            return dict(EMPTY_INPUT_SCHEMA)
        return tool_input_schema(self.input_model)

    def payload(self, base_url: str) -> dict[str, Any]:
        """Request body for creating or updating the tool."""
        return {
            "name": self.name,
            "description": self.description,
            "type": TOOL_TYPE,
            "enabled": True,
            "meta": {
                "url": f"{base_url}{self.path}",
                "method": self.method,
                "input_schema": self.input_schema(),
            },
        }


@dataclass(frozen=True)
class KnowledgeDescriptor:
    name: str
    description: str
    source: str
    type: str = KNOWLEDGE_TYPE

    def payload(self, base_url: str) -> dict[str, Any]:
        # Relative sources are documents served by this app under /static.
        source = self.source if "://" in self.source else f"{base_url}/{self.source.lstrip('/')}"
        return {
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "knowledge_source_details": {"source": source},
        }


@dataclass(frozen=True)
class OperatorDescriptor:
    friendly_name: str
    prompt: str
    result_model: type[BaseModel]
    operator_type: str = OPERATOR_TYPE
    examples: list[dict[str, Any]] = field(default_factory=list)

    def config(self) -> dict[str, Any]:
        return {
            "prompt": self.prompt,
            "result_schema": tool_input_schema(self.result_model),
            "examples": list(self.examples),
        }


TOOLS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        name="Customer Lookup",
        description=(
            "Use this tool at the beginning of every conversation to learn about the customer.\n\n"
            "Tool Rules:\n"
            " - Mandatory at conversation start\n"
            " - Accessible fields: first name, last name, address, email, phone\n"
            " - Use to personalize greeting"
        ),
        method="GET",
        path="/tools/customer-lookup",
    ),
    ToolDescriptor(
        name="Order Look Up",
        description=(
            "Use this tool to look up the customers order. ALWAYS ask the user to confirm the last "
            "four characters of their order number to ensure you are referencing the correct one."
        ),
        method="GET",
        path="/tools/order-lookup",
        input_model=OrderLookupTool,
    ),
    ToolDescriptor(
        name="Order ID Validator",
        description=(
            "Use this tool to find an order from the last four characters of its order number when "
            "the customer is not calling from the phone or email on the order."
        ),
        method="GET",
        path="/tools/order-id-validator",
        input_model=OrderLookupTool,
    ),
    ToolDescriptor(
        name="Return Order",
        description=(
            "Use this tool to return a customers order using the order id. "
            'Only use this tool if the order status is "delivered".'
        ),
        method="POST",
        path="/tools/return-order",
        input_model=ReturnOrderTool,
    ),
    ToolDescriptor(
        name="Customer Survey",
        description=(
            "Use this tool when you have conducted the customer survey after you have handled all the "
            "users questions and requests. ALWAYS use this tool before ending the conversation."
        ),
        method="POST",
        path="/tools/create-survey",
        input_model=SurveyTool,
    ),
    ToolDescriptor(
        name="Product Inventory",
        description="Use this tool to provide product recommendations to the user.",
        method="GET",
        path="/tools/products",
    ),
    ToolDescriptor(
        name="Send to Flex",
        description=(
            "Use this tool when the user wants to speak with a supervisor or when you are not able to "
            "fulfill their request. ALWAYS tell the user you are transferring them to a Supervisor "
            "before using this tool."
        ),
        method="GET",
        path="/tools/send-to-flex",
    ),
    ToolDescriptor(
        name="Place Order",
        description=(
            "Use this tool to place an order. ALWAYS confirm with the user that they want to use the "
            "same billing and shipping information as their last order."
        ),
        method="POST",
        path="/tools/place-order",
        input_model=PlaceOrderTool,
    ),
)

DEFAULT_KNOWLEDGE: tuple[KnowledgeDescriptor, ...] = (
    KnowledgeDescriptor(
        name="Owl Shoes FAQ",
        description="Frequently asked questions about Owl Shoes sizing, shipping and store policies.",
        source="static/knowledge/owl-shoes-faq.md",
    ),
    KnowledgeDescriptor(
        name="Owl Shoes Return Policy",
        description="Return eligibility, refund timing and exchange rules.",
        source="static/knowledge/return-policy.md",
    ),
)

CALL_SCORING_PROMPT = (
    "Use the following parameters to evaluate the phone call between the agent and the customer. "
    "Assign scores (1 to 5) to each KPI and provide comments to justify the score. \n"
    "Each KPI assesses the agent's performance in various aspects of the call.\n"
    "1. Greeting & Professionalism: Was the agent friendly, clear, and professional? (1-5)\n"
    "2. Listening & Empathy: Did the agent actively listen and show empathy? (1-5)\n"
    "3. Communication & Clarity: Was the information clear and easy to understand? (1-5)\n"
    "4. Problem-Solving: Did the agent resolve the issue efficiently? (1-5)\n"
    "5. Overall Experience: Was the customer satisfied, and was the call handled well? (1-5)"
)

OPERATORS: tuple[OperatorDescriptor, ...] = (
    OperatorDescriptor(
        friendly_name="CallScoring",
        prompt=CALL_SCORING_PROMPT,
        result_model=CallScoreResult,
    ),
)


def knowledge_sources(config: Settings) -> list[KnowledgeDescriptor]:
    """Built-in knowledge documents plus any configured in KNOWLEDGE_SOURCES."""
    extra = [
        KnowledgeDescriptor(
            name=source["name"],
            description=source.get("description", ""),
            source=source["source"],
            type=source.get("type", KNOWLEDGE_TYPE),
        )
        for source in config.knowledge_sources
    ]
    return [*DEFAULT_KNOWLEDGE, *extra]
