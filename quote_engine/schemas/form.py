from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from quote_engine.schemas.parameter import Parameter
from quote_engine.schemas.quote import (
    BreakdownLine,
    CurrencyCode,
    FieldValues,
    default_field_values,
)


class FileConnection(BaseModel):
    """Maps a key of extracted file metadata onto a parameter's field value."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    metadata_key: str = Field(..., alias="metadataKey")
    parameter_name: str = Field(..., alias="parameterName")
    description: str = ""


class QuoteFormCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: Optional[str] = None
    currency: CurrencyCode = "USD"
    parameters: List[Parameter] = Field(default_factory=list)
    file_connections: List[FileConnection] = Field(
        default_factory=list, alias="fileConnections"
    )
    form_values: FieldValues = Field(
        default_factory=default_field_values, alias="formValues"
    )


class QuoteFormRead(BaseModel):
    id: int
    name: str
    description: Optional[str]
    currency: str
    parameters: List[Dict[str, Any]]
    file_connections: List[Dict[str, Any]]
    form_values: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class QuoteCreate(BaseModel):
    values: FieldValues = Field(default_factory=default_field_values)


class QuoteRead(BaseModel):
    id: int
    form_id: int
    submitted_values: Dict[str, Any]
    resolved_values: Dict[str, Any]
    breakdown: List[BreakdownLine]
    total_price: float
    quantity: float
    errors: List[str]
    created_at: datetime

    model_config = {"from_attributes": True}
