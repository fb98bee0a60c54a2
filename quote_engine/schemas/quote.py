from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from quote_engine.schemas.parameter import Parameter

CurrencyCode = Literal["USD", "IDR"]

FieldValues = Dict[str, Any]


def default_field_values() -> FieldValues:
    return {"quantity": "1"}


class BreakdownLine(BaseModel):
    parameter: str
    description: str
    amount: float


class PriceResult(BaseModel):
    total: float = 0.0
    breakdown: List[BreakdownLine] = Field(default_factory=list)
    quantity: float = 1.0
    unit_total: float = 0.0
    main_units_value: float = 0.0


class QuoteResult(PriceResult):
    values: FieldValues = Field(default_factory=default_field_values)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class QuoteRequest(BaseModel):
    parameters: List[Parameter]
    values: FieldValues = Field(default_factory=default_field_values)
    currency: CurrencyCode = "USD"


class UpdateValueRequest(QuoteRequest):
    name: str
    value: Any = None


class MainUnitsRequest(BaseModel):
    parameters: List[Parameter]
    parameter_id: str
    is_main: bool = True


class MainUnitsResponse(BaseModel):
    parameters: List[Parameter]
