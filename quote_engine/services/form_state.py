"""
State holder for one quote form being filled in.

The pricing engine itself is a pure function of (parameters, values). This
class owns the mutable side: it applies field changes, clears values that a
changed parent invalidates, keeps derived values current and re-runs the
evaluation on demand.
"""

import logging
from typing import Any, Dict, List, Optional

from quote_engine.schemas.form import FileConnection
from quote_engine.schemas.parameter import (
    FixedOptionParameter,
    NumericValueParameter,
    Parameter,
    copy_parameter,
)
from quote_engine.schemas.quote import QuoteResult, default_field_values
from quote_engine.services.derived import resolve_derived_values
from quote_engine.services.estimator import evaluate_quote
from quote_engine.services.pricing_calculator import (
    QUANTITY_PARAMETER,
    QuoteConfigurationError,
)
from quote_engine.services.visibility import reset_dependents

logger = logging.getLogger(__name__)


def set_main_units(parameters: List[Parameter], parameter_id: str, is_main: bool = True) -> List[Parameter]:
    """
    Set or clear the main-units flag on one parameter.

    Setting it clears the flag from every other parameter, so at most one
    parameter is ever flagged. Returns a new list; the input is not modified.

    Raises:
        QuoteConfigurationError: Unknown id, or a non-NumericValue parameter
            was asked to become main units
    """
    target = next((p for p in parameters if p.id == parameter_id), None)
    if target is None:
        raise QuoteConfigurationError(f"Unknown parameter id '{parameter_id}'")
    if is_main and not isinstance(target, NumericValueParameter):
        raise QuoteConfigurationError(
            f"Only NumericValue parameters can be main units ('{target.name}' is {target.type})"
        )

    updated: List[Parameter] = []
    for param in parameters:
        if param.id == parameter_id:
            updated.append(copy_parameter(param, is_main_units=is_main))
        elif is_main and param.is_main_units:
            updated.append(copy_parameter(param, is_main_units=False))
        else:
            updated.append(param)
    return updated


def ensure_quantity_parameter(parameters: List[Parameter]) -> List[Parameter]:
    """Prepend the standard order-quantity parameter if the set has none."""
    if any(p.name == QUANTITY_PARAMETER for p in parameters):
        return list(parameters)
    quantity = NumericValueParameter(
        id="param_quantity",
        name=QUANTITY_PARAMETER,
        label="Quantity",
        required=True,
        min=1,
        step=1,
        unit="units",
    )
    return [quantity, *parameters]


class QuoteFormState:
    def __init__(
        self,
        parameters: List[Parameter],
        values: Optional[Dict[str, Any]] = None,
        currency: str = "USD",
        file_connections: Optional[List[FileConnection]] = None,
    ):
        self.parameters = list(parameters)
        self.currency = currency
        self.file_connections = list(file_connections or [])
        self.initial_values = dict(values) if values is not None else default_field_values()
        self.values = resolve_derived_values(self.parameters, self.initial_values)

    def get_parameter(self, name: str) -> Optional[Parameter]:
        return next((p for p in self.parameters if p.name == name), None)

    def update_form_value(self, name: str, value: Any) -> Dict[str, Any]:
        """
        Apply one field change and return the new values.

        Changing a FixedOption clears every parameter conditioned on it, then
        all derived values are recomputed so chained formulas settle in a
        single call.
        """
        new_values = {**self.values, name: value}

        param = self.get_parameter(name)
        if isinstance(param, FixedOptionParameter) and self.values.get(name) != value:
            new_values = reset_dependents(self.parameters, new_values, name)

        self.values = resolve_derived_values(self.parameters, new_values)
        return dict(self.values)

    def set_main_units(self, parameter_id: str, is_main: bool = True) -> List[Parameter]:
        self.parameters = set_main_units(self.parameters, parameter_id, is_main)
        return list(self.parameters)

    def apply_file_metadata(self, metadata: Dict[str, Any]) -> Dict[str, Any]:
        """Copy extracted file metadata into the connected parameters."""
        for connection in self.file_connections:
            metadata_value = metadata.get(connection.metadata_key)
            if metadata_value is None:
                continue
            logger.info(
                f"Auto-filling {connection.parameter_name} with {metadata_value} "
                f"from file {connection.metadata_key}"
            )
            self.update_form_value(connection.parameter_name, str(metadata_value))
        return dict(self.values)

    def reset(self) -> Dict[str, Any]:
        self.values = resolve_derived_values(self.parameters, self.initial_values)
        return dict(self.values)

    @property
    def has_changes(self) -> bool:
        return self.values != resolve_derived_values(self.parameters, self.initial_values)

    def quote(self) -> QuoteResult:
        return evaluate_quote(self.parameters, self.values, self.currency)
