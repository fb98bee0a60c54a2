from typing import Any, Dict, List

from quote_engine.schemas.parameter import Parameter


def is_visible(parameter: Parameter, values: Dict[str, Any]) -> bool:
    """A parameter is visible unless its conditional parent holds a value outside showWhen."""
    conditional = parameter.conditional
    if conditional is None:
        return True
    parent_value = values.get(conditional.parent_parameter)
    if parent_value is None:
        return False
    return parent_value in conditional.show_when or str(parent_value) in conditional.show_when


def visible_parameters(parameters: List[Parameter], values: Dict[str, Any]) -> List[Parameter]:
    return [p for p in parameters if is_visible(p, values)]


def hidden_names(parameters: List[Parameter], values: Dict[str, Any]) -> set:
    return {p.name for p in parameters if not is_visible(p, values)}


def dependents_of(parameters: List[Parameter], parent_name: str) -> List[Parameter]:
    """Parameters whose visibility is controlled by ``parent_name``."""
    return [
        p
        for p in parameters
        if p.conditional is not None and p.conditional.parent_parameter == parent_name
    ]


def reset_dependents(
    parameters: List[Parameter], values: Dict[str, Any], parent_name: str
) -> Dict[str, Any]:
    """
    Clear the field values of every parameter conditioned on ``parent_name``.

    Their option set or visibility may no longer apply once the parent changes.
    Returns a new mapping; ``values`` is left untouched.
    """
    new_values = dict(values)
    for dependent in dependents_of(parameters, parent_name):
        if dependent.name in new_values:
            new_values[dependent.name] = ""
    return new_values
