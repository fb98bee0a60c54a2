from typing import Any, Dict, List

from quote_engine.schemas.parameter import (
    DerivedCalcParameter,
    FixedOptionParameter,
    NumericValueParameter,
    Parameter,
)
from quote_engine.services.derived import dependency_order
from quote_engine.services.expression import formula_variables, parse_number
from quote_engine.services.pricing_calculator import (
    QUANTITY_PARAMETER,
    uses_main_units_pricing,
)
from quote_engine.services.visibility import is_visible


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def validate_form_values(parameters: List[Parameter], values: Dict[str, Any]) -> List[str]:
    """
    Collect user-facing problems with submitted field values.

    Only visible parameters are checked. The list is informational: pricing
    still runs and returns a best-effort total when it is non-empty.

    Args:
        parameters: The parameter set
        values: Field values (derived values resolved)

    Returns:
        List of human-readable messages, in parameter order
    """
    errors: List[str] = []

    raw_quantity = values.get(QUANTITY_PARAMETER)
    if not _is_blank(raw_quantity):
        quantity = parse_number(raw_quantity)
        if quantity is None or quantity < 1:
            errors.append("Quantity must be at least 1")

    for param in parameters:
        if param.name == QUANTITY_PARAMETER or not is_visible(param, values):
            continue
        value = values.get(param.name)

        if isinstance(param, FixedOptionParameter):
            if _is_blank(value):
                if param.required:
                    errors.append(f"{param.display_name} is required")
                continue

            option = param.find_option(value)
            if option is None:
                errors.append(f"{param.display_name} has no option '{value}'")
                continue

            # A required choice with add-ons needs at least one add-on picked
            if param.required and option.sub_options:
                picked = any(values.get(f"{param.name}_{s.value}") for s in option.sub_options)
                if not picked:
                    errors.append(
                        f"{option.label or param.display_name} requires selecting an additional option"
                    )

        elif isinstance(param, NumericValueParameter):
            if param.required and parse_number(value) is None:
                errors.append(f"{param.display_name} is required")

    return errors


def validate_parameter_set(parameters: List[Parameter]) -> List[str]:
    """
    Check a parameter set for configuration mistakes.

    These are warnings for the form author. The engine tolerates all of them
    (cycles are bounded, bad formulas price as zero) except the main-units
    problems, which zero the quote until fixed.
    """
    warnings: List[str] = []
    names = [p.name for p in parameters]
    known = set(names) | {QUANTITY_PARAMETER}

    seen_names = set()
    seen_ids = set()
    for param in parameters:
        if not param.name:
            warnings.append(f"Parameter {param.id} has no name")
        elif param.name in seen_names:
            warnings.append(f"Duplicate parameter name '{param.name}'")
        seen_names.add(param.name)
        if param.id in seen_ids:
            warnings.append(f"Duplicate parameter id '{param.id}'")
        seen_ids.add(param.id)

    main_units = [p for p in parameters if p.is_main_units]
    if len(main_units) > 1:
        warnings.append(
            f"Only one main-units parameter is allowed, found: {', '.join(p.name for p in main_units)}"
        )
    for param in main_units:
        if not isinstance(param, NumericValueParameter):
            warnings.append(f"Main-units parameter '{param.name}' should be a NumericValue")
    if not main_units:
        for name in uses_main_units_pricing(parameters):
            warnings.append(f"'{name}' prices per main unit but no main-units parameter is set")

    for param in parameters:
        if param.conditional is None:
            continue
        parent = param.conditional.parent_parameter
        if parent == param.name:
            warnings.append(f"'{param.name}' is conditional on itself")
        elif parent not in names:
            warnings.append(f"'{param.name}' is conditional on unknown parameter '{parent}'")

    for param in parameters:
        if not isinstance(param, DerivedCalcParameter):
            continue
        if not param.formula:
            warnings.append(f"Derived parameter '{param.name}' has no formula")
            continue
        for dep in param.dependencies:
            if dep not in known:
                warnings.append(f"'{param.name}' depends on unknown parameter '{dep}'")
        for name in formula_variables(param.formula):
            if name not in param.dependencies:
                warnings.append(
                    f"Formula of '{param.name}' uses '{name}' which is not listed in its dependencies"
                )

    _, cyclic = dependency_order(parameters)
    if cyclic:
        warnings.append(
            f"Circular formula dependencies between: {', '.join(p.name for p in cyclic)}"
        )

    return warnings


def generate_validation_summary(errors: List[str]) -> str:
    """
    Generate a human-readable validation summary.

    Args:
        errors: Messages from validate_form_values

    Returns:
        Summary string
    """
    if not errors:
        return "✓ Quote is complete."

    issues = [f"• {message}" for message in errors]
    return "✗ Quote needs attention:\n" + "\n".join(issues)
