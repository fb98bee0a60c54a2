import json

import pytest
from pydantic import ValidationError

from quote_engine.schemas.parameter import (
    DerivedCalcParameter,
    FixedOptionParameter,
    NumericValueParameter,
    copy_parameter,
    dump_parameter_set,
    load_parameter_set,
)

PARAMETER_SET_JSON = json.dumps(
    [
        {
            "id": "p1",
            "name": "size",
            "label": "Size",
            "type": "FixedOption",
            "required": True,
            "displayType": "radio",
            "pricing": {"base_price": 1},
            "options": [
                {
                    "label": "Large",
                    "value": "L",
                    "pricing": {"base_price": 2, "unit_price": 0.5, "multiplier": 1.2},
                    "subOptions": [{"id": "s", "label": "Foil", "value": "foil", "price": 3, "pricingScope": "per_unit"}],
                }
            ],
        },
        {
            "id": "p2",
            "name": "pages",
            "type": "NumericValue",
            "isMainUnits": True,
            "min": 4,
            "unitsPerQuantity": 2,
            "pricing": {"step_pricing": {"threshold": 10, "step_amount": 0.25}},
        },
        {
            "id": "p3",
            "name": "sheets",
            "type": "DerivedCalc",
            "formula": "pages / 4",
            "dependencies": ["pages"],
            "conditional": {"parentParameter": "size", "showWhen": ["L"]},
        },
    ]
)


def test_load_selects_variant_by_type():
    size, pages, sheets = load_parameter_set(PARAMETER_SET_JSON)

    assert isinstance(size, FixedOptionParameter)
    assert isinstance(pages, NumericValueParameter)
    assert isinstance(sheets, DerivedCalcParameter)
    assert size.options[0].sub_options[0].pricing_scope == "per_unit"
    assert pages.is_main_units
    assert pages.pricing.step_pricing.step_amount == 0.25
    assert sheets.conditional.show_when == ["L"]


def test_dump_keeps_camel_case_keys_and_numeric_types():
    dumped = dump_parameter_set(load_parameter_set(PARAMETER_SET_JSON))

    assert dumped[0]["options"][0]["pricing"]["unit_price"] == 0.5
    assert dumped[0]["options"][0]["subOptions"][0]["pricingScope"] == "per_unit"
    assert dumped[1]["isMainUnits"] is True
    assert dumped[1]["unitsPerQuantity"] == 2
    assert isinstance(dumped[1]["pricing"]["step_pricing"]["threshold"], float)
    assert load_parameter_set(dumped) == load_parameter_set(PARAMETER_SET_JSON)


def test_fields_of_other_variants_are_ignored():
    (param,) = load_parameter_set(
        [{"id": "n", "name": "n", "type": "NumericValue", "options": [{"value": "x"}], "formula": "1 + 1"}]
    )
    assert isinstance(param, NumericValueParameter)
    assert not hasattr(param, "options")
    assert "formula" not in dump_parameter_set([param])[0]


def test_unknown_type_is_rejected():
    with pytest.raises(ValidationError):
        load_parameter_set([{"id": "z", "name": "z", "type": "Slider"}])


def test_parameters_are_immutable_and_copied_on_update():
    (param,) = load_parameter_set([{"id": "n", "name": "n", "type": "NumericValue"}])
    with pytest.raises(ValidationError):
        param.is_main_units = True

    flagged = copy_parameter(param, is_main_units=True)
    assert flagged.is_main_units
    assert not param.is_main_units


def test_find_option_matches_string_form_of_value():
    (param,) = load_parameter_set(
        [{"id": "c", "name": "count", "type": "FixedOption", "options": [{"value": "100"}]}]
    )
    assert param.find_option(100).value == "100"
    assert param.find_option("") is None
    assert param.find_option("200") is None
