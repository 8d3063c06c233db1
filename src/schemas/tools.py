"""
Pydantic schemas for assistant tool parameters.

This module defines request models for all tool and front-end endpoints.
The same models are exported as JSON Schema when tools are registered with
the assistant, so the schema the assistant sees is the schema the handler
validates.

Design decisions:
- Field descriptions double as the parameter hints shown to the assistant
- Numeric ids are accepted and coerced to strings
- Type validation at API boundary
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ===== Order Tool Parameters =====


class OrderLookupTool(BaseModel):
    """
    Parameters for the order lookup and order id validator tools.

    Endpoints: GET /tools/order-lookup, GET /tools/order-id-validator
    """
    order_confirmation_digits: str = Field(
        ...,
        min_length=1,
        description="The last four characters of the order number"
    )

    model_config = ConfigDict(coerce_numbers_to_str=True)


class PlaceOrderTool(BaseModel):
    """
    Parameters for the place order tool.

    Endpoint: POST /tools/place-order
    """
    product_id: str = Field(
        ...,
        min_length=1,
        description="The product id to order"
    )

    model_config = ConfigDict(coerce_numbers_to_str=True)


class ReturnOrderTool(BaseModel):
    """
    Parameters for the return order tool.

    Endpoint: POST /tools/return-order
    """
    order_id: str = Field(
        ...,
        min_length=1,
        description="The order id to return"
    )
    return_reason: str = Field(
        ...,
        min_length=1,
        description="Why the customer is returning the order"
    )

    model_config = ConfigDict(coerce_numbers_to_str=True)


# ===== Survey Tool Parameters =====


class SurveyTool(BaseModel):
    """
    Parameters for the customer survey tool.

    Endpoint: POST /tools/create-survey
    """
    rating: int = Field(
        ...,
        ge=1,
        le=5,
        description="The rating the customer gave, 1-5"
    )
    feedback: Optional[str] = Field(
        default=None,
        description="The feedback the customer gave"
    )


# ===== Front-end Request Bodies =====


class CreateCustomerRequest(BaseModel):
    """Customer sign-up form submitted by the demo front end."""
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)

    model_config = ConfigDict(coerce_numbers_to_str=True, str_strip_whitespace=True)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v


class LineItem(BaseModel):
    """
    One line of an order.

    Unknown attributes (size, color, brand...) are kept and echoed back.
    """
    product_id: Optional[str] = None
    name: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    price: Optional[float] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class CreateOrderRequest(BaseModel):
    """Order submitted by the demo front end for an existing customer."""
    customer_id: str = Field(..., min_length=1)
    items: list[LineItem] = Field(..., min_length=1)
    total_amount: float = Field(..., ge=0)

    model_config = ConfigDict(coerce_numbers_to_str=True)


# ===== Call Analytics =====


class CallScoreResult(BaseModel):
    """
    Result produced by the call-scoring operator.

    Each KPI is scored 1 (poor) to 5 (excellent).
    """
    greeting_professionalism: int = Field(..., ge=1, le=5)
    listening_empathy: int = Field(..., ge=1, le=5)
    communication_clarity: int = Field(..., ge=1, le=5)
    problem_solving: int = Field(..., ge=1, le=5)
    overall_experience: int = Field(..., ge=1, le=5)


def tool_input_schema(model: type[BaseModel]) -> dict[str, Any]:
    """JSON Schema for a tool's input, without pydantic's title noise."""
    schema = model.model_json_schema()
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema
