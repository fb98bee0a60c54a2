import pytest

from quote_engine.schemas.parameter import load_parameter_set
from quote_engine.services.form_state import (
    QuoteFormState,
    ensure_quantity_parameter,
    set_main_units,
)
from quote_engine.services.pricing_calculator import QuoteConfigurationError
from quote_engine.services.samples import load_sample

NUMERIC_PAIR = load_parameter_set(
    [
        {"id": "x", "name": "x", "type": "NumericValue", "isMainUnits": True},
        {"id": "y", "name": "y", "type": "NumericValue"},
        {"id": "opt", "name": "opt", "type": "FixedOption", "options": [{"value": "a"}]},
    ]
)


def test_setting_main_units_clears_previous_flag():
    updated = set_main_units(NUMERIC_PAIR, "y")
    assert [p.name for p in updated if p.is_main_units] == ["y"]
    # input untouched
    assert [p.name for p in NUMERIC_PAIR if p.is_main_units] == ["x"]


def test_clearing_main_units_leaves_none_flagged():
    updated = set_main_units(NUMERIC_PAIR, "x", is_main=False)
    assert not any(p.is_main_units for p in updated)


def test_main_units_must_be_numeric_and_known():
    with pytest.raises(QuoteConfigurationError):
        set_main_units(NUMERIC_PAIR, "opt")
    with pytest.raises(QuoteConfigurationError):
        set_main_units(NUMERIC_PAIR, "missing")


def test_ensure_quantity_parameter():
    with_quantity = ensure_quantity_parameter(NUMERIC_PAIR)
    assert with_quantity[0].name == "quantity"
    assert with_quantity[0].required
    assert ensure_quantity_parameter(with_quantity) == with_quantity


def test_update_propagates_through_derived_chain(chained_parameters):
    state = QuoteFormState(chained_parameters)
    values = state.update_form_value("A", "5")
    assert values["B"] == 10
    assert values["C"] == 11
    assert state.has_changes


def test_changing_parent_option_resets_conditional_children():
    parameters = load_parameter_set(
        [
            {
                "id": "m",
                "name": "material",
                "type": "FixedOption",
                "options": [{"value": "basic"}, {"value": "premium"}],
            },
            {
                "id": "c",
                "name": "coating",
                "type": "FixedOption",
                "conditional": {"parentParameter": "material", "showWhen": ["premium"]},
                "options": [{"value": "gloss", "pricing": {"base_price": 4}}],
            },
        ]
    )
    state = QuoteFormState(parameters, {"quantity": "1", "material": "premium", "coating": "gloss"})
    assert state.quote().total == 4

    values = state.update_form_value("material", "basic")
    assert values["coating"] == ""

    values = state.update_form_value("material", "premium")
    assert values["coating"] == ""
    assert state.quote().total == 0


def test_same_option_value_does_not_reset_children():
    parameters = load_parameter_set(
        [
            {"id": "m", "name": "material", "type": "FixedOption", "options": [{"value": "premium"}]},
            {
                "id": "c",
                "name": "coating",
                "type": "FixedOption",
                "conditional": {"parentParameter": "material", "showWhen": ["premium"]},
                "options": [{"value": "gloss"}],
            },
        ]
    )
    state = QuoteFormState(parameters, {"material": "premium", "coating": "gloss"})
    assert state.update_form_value("material", "premium")["coating"] == "gloss"


def test_file_metadata_fills_connected_parameters():
    sample = load_sample("booklets")
    state = QuoteFormState(
        sample.parameters, sample.form_values, sample.currency, sample.file_connections
    )
    values = state.apply_file_metadata({"pages": 24, "title": "ignored"})

    assert values["pages"] == "24"
    assert values["sheets"] == 6
    assert state.quote().main_units_value == 24


def test_reset_restores_initial_values(chained_parameters):
    state = QuoteFormState(chained_parameters, {"quantity": "1", "A": "1"})
    state.update_form_value("A", "9")
    values = state.reset()
    assert values["A"] == "1"
    assert values["B"] == 2
    assert not state.has_changes


def test_state_set_main_units_affects_quote(size_with_main_units):
    state = QuoteFormState(size_with_main_units, {"qty_units": "10", "size": "L"})
    assert state.quote().total == 7
    state.set_main_units("p_qty_units", is_main=False)
    # per-unit option pricing now lacks a main-units parameter
    assert state.quote().total == 0
