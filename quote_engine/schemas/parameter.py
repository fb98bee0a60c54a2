"""
Pricing parameter configuration models.

A parameter set is a JSON array of parameters. Each parameter is one of three
variants, selected by its ``type`` key: ``FixedOption``, ``NumericValue`` or
``DerivedCalc``. JSON keys keep their camelCase spelling (``isMainUnits``,
``subOptions``...) while Python attributes are snake_case.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class StepPricing(_ConfigModel):
    threshold: float
    step_amount: float


class PricingRule(_ConfigModel):
    base_price: Optional[float] = None  # flat, per ordered item
    unit_price: Optional[float] = None  # scales with units
    multiplier: Optional[float] = None  # applied to the parameter subtotal
    step_pricing: Optional[StepPricing] = None


class SubOption(_ConfigModel):
    id: str = ""
    label: str = ""
    value: str
    description: str = ""
    price: float = 0.0
    pricing_scope: Literal["per_qty", "per_unit"] = Field(
        "per_qty", alias="pricingScope"
    )


class FixedOption(_ConfigModel):
    label: str = ""
    value: str
    description: str = ""
    pricing: PricingRule = Field(default_factory=PricingRule)
    display_type: Optional[Literal["select", "radio", "toggle"]] = Field(
        None, alias="displayType"
    )
    sub_options: List[SubOption] = Field(default_factory=list, alias="subOptions")


class Conditional(_ConfigModel):
    parent_parameter: str = Field(..., alias="parentParameter")
    show_when: List[str] = Field(default_factory=list, alias="showWhen")


class _ParameterBase(_ConfigModel):
    id: str
    name: str
    label: str = ""
    description: str = ""
    required: bool = False
    pricing: PricingRule = Field(default_factory=PricingRule)
    is_main_units: bool = Field(False, alias="isMainUnits")
    conditional: Optional[Conditional] = None

    @property
    def display_name(self) -> str:
        return self.label or self.name


class FixedOptionParameter(_ParameterBase):
    type: Literal["FixedOption"] = "FixedOption"
    options: List[FixedOption] = Field(default_factory=list)
    display_type: Optional[Literal["select", "radio", "toggle"]] = Field(
        None, alias="displayType"
    )

    def find_option(self, value: Any) -> Optional[FixedOption]:
        """Return the option whose value matches a submitted field value."""
        if value is None or value == "":
            return None
        for option in self.options:
            if option.value == value or option.value == str(value):
                return option
        return None


class NumericValueParameter(_ParameterBase):
    type: Literal["NumericValue"] = "NumericValue"
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    unit: Optional[str] = None
    units_per_quantity: Optional[float] = Field(None, alias="unitsPerQuantity")


class DerivedCalcParameter(_ParameterBase):
    type: Literal["DerivedCalc"] = "DerivedCalc"
    formula: str = ""
    dependencies: List[str] = Field(default_factory=list)
    unit: Optional[str] = None
    units_per_quantity: Optional[float] = Field(None, alias="unitsPerQuantity")


Parameter = Annotated[
    Union[FixedOptionParameter, NumericValueParameter, DerivedCalcParameter],
    Field(discriminator="type"),
]

ParameterSet = List[Parameter]

_parameter_set_adapter = TypeAdapter(ParameterSet)


def load_parameter_set(data: Any) -> List[Parameter]:
    """Validate a deserialized parameter set (list of dicts or JSON string)."""
    if isinstance(data, (str, bytes)):
        return _parameter_set_adapter.validate_json(data)
    return _parameter_set_adapter.validate_python(data)


def dump_parameter_set(parameters: List[Parameter]) -> List[Dict[str, Any]]:
    """Serialize a parameter set back to JSON-compatible dicts."""
    return _parameter_set_adapter.dump_python(
        list(parameters), mode="json", by_alias=True, exclude_none=True
    )


def copy_parameter(parameter: Parameter, **updates: Any) -> Parameter:
    """Return a copy of a (frozen) parameter with some fields replaced."""
    return parameter.model_copy(update=updates)
