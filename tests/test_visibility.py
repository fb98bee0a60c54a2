from quote_engine.schemas.parameter import load_parameter_set
from quote_engine.services.visibility import (
    dependents_of,
    is_visible,
    reset_dependents,
    visible_parameters,
)

PARAMETERS = load_parameter_set(
    [
        {
            "id": "p_material",
            "name": "material",
            "type": "FixedOption",
            "options": [{"value": "basic"}, {"value": "premium"}],
        },
        {
            "id": "p_coating",
            "name": "coating",
            "type": "FixedOption",
            "conditional": {"parentParameter": "material", "showWhen": ["premium"]},
            "options": [{"value": "gloss"}],
        },
        {
            "id": "p_sheen",
            "name": "sheen",
            "type": "NumericValue",
            "conditional": {"parentParameter": "material", "showWhen": ["premium"]},
        },
        {"id": "p_pages", "name": "pages", "type": "NumericValue"},
    ]
)


def test_unconditional_parameter_is_always_visible():
    assert is_visible(PARAMETERS[0], {})
    assert is_visible(PARAMETERS[3], {"material": "basic"})


def test_conditional_parameter_follows_parent_value():
    coating = PARAMETERS[1]
    assert is_visible(coating, {"material": "premium"})
    assert not is_visible(coating, {"material": "basic"})
    assert not is_visible(coating, {"material": ""})
    assert not is_visible(coating, {})


def test_visible_parameters_keeps_configuration_order():
    names = [p.name for p in visible_parameters(PARAMETERS, {"material": "premium"})]
    assert names == ["material", "coating", "sheen", "pages"]
    names = [p.name for p in visible_parameters(PARAMETERS, {"material": "basic"})]
    assert names == ["material", "pages"]


def test_reset_dependents_clears_children_without_mutating_input():
    values = {"material": "basic", "coating": "gloss", "sheen": "3", "pages": "8"}
    reset = reset_dependents(PARAMETERS, values, "material")

    assert reset == {"material": "basic", "coating": "", "sheen": "", "pages": "8"}
    assert values["coating"] == "gloss"
    assert [p.name for p in dependents_of(PARAMETERS, "material")] == ["coating", "sheen"]
