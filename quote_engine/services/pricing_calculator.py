"""
Rule-based price aggregation for configurable print products.

Walks a parameter set against resolved field values and produces a per-unit
price breakdown and an order total. Pricing rules come entirely from the
user-authored configuration; nothing here is specific to one product.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from quote_engine.core.config import SCALE_NUMERIC_UNIT_PRICE_BY_MAIN_UNITS
from quote_engine.core.currency import format_number, format_price
from quote_engine.schemas.parameter import (
    DerivedCalcParameter,
    FixedOption,
    FixedOptionParameter,
    NumericValueParameter,
    Parameter,
    PricingRule,
)
from quote_engine.schemas.quote import BreakdownLine, PriceResult
from quote_engine.services.expression import parse_number
from quote_engine.services.visibility import is_visible

QUANTITY_PARAMETER = "quantity"


class QuoteConfigurationError(Exception):
    pass


def find_main_units_parameter(parameters: List[Parameter]) -> Optional[Parameter]:
    """
    Return the parameter flagged ``isMainUnits``, if any.

    Raises:
        QuoteConfigurationError: If more than one parameter carries the flag
    """
    flagged = [p for p in parameters if p.is_main_units]
    if len(flagged) > 1:
        raise QuoteConfigurationError(
            f"Only one main-units parameter is allowed, found: {', '.join(p.name for p in flagged)}"
        )
    return flagged[0] if flagged else None


def uses_main_units_pricing(parameters: List[Parameter]) -> List[str]:
    """Names of parameters whose options or sub-options price per main unit."""
    names = []
    for param in parameters:
        if not isinstance(param, FixedOptionParameter):
            continue
        for option in param.options:
            scaled_subs = any(
                s.pricing_scope == "per_unit" and s.price for s in option.sub_options
            )
            if option.pricing.unit_price or scaled_subs:
                names.append(param.name)
                break
    return names


class PricingCalculator:
    """
    Aggregates parameter contributions into a price breakdown and total.

    Per parameter, in order: the parameter's own base price, then the
    type-specific contributions, then its multiplier. Only positive
    contributions become breakdown lines. The per-unit total is multiplied by
    the order quantity at the end.
    """

    def __init__(self, scale_numeric_by_main_units: bool = SCALE_NUMERIC_UNIT_PRICE_BY_MAIN_UNITS):
        self.scale_numeric_by_main_units = scale_numeric_by_main_units
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def calculate_price(
        self,
        parameters: List[Parameter],
        values: Dict[str, Any],
        currency: str = "USD",
    ) -> PriceResult:
        """
        Calculate the price breakdown for resolved field values.

        Args:
            parameters: The parameter set
            values: Field values with derived values already resolved
            currency: Currency code used in breakdown descriptions

        Returns:
            PriceResult with total, breakdown and the quantity/main-units used.
            Configuration errors yield a zero total with an empty breakdown.
        """
        try:
            main_param = find_main_units_parameter(parameters)
            if main_param is None:
                needs_main = uses_main_units_pricing(parameters)
                if needs_main:
                    raise QuoteConfigurationError(
                        f"Per-unit option pricing on {', '.join(needs_main)} requires a main-units parameter"
                    )

            if main_param is not None and not is_visible(main_param, values):
                self.logger.debug(f"Main-units parameter {main_param.name} is hidden, using 0")
                main_param = None

            quantity = self._resolve_quantity(values)
            main_units_value = 0.0
            if main_param is not None:
                main_units_value = parse_number(values.get(main_param.name)) or 0.0

            unit_total = 0.0
            breakdown: List[BreakdownLine] = []

            for param in parameters:
                if param.name == QUANTITY_PARAMETER or not is_visible(param, values):
                    continue
                value = values.get(param.name)
                if value is None or value == "":
                    continue

                amount, parts = self._price_parameter(
                    param, value, values, main_param, main_units_value, currency
                )
                self.logger.debug(f"{param.name}: {amount} ({'; '.join(parts)})")

                if amount > 0:
                    breakdown.append(
                        BreakdownLine(
                            parameter=param.display_name,
                            description=_join_parts(parts),
                            amount=amount,
                        )
                    )
                    unit_total += amount

            total = unit_total * quantity
            self.logger.info(
                f"Calculated total {format_price(total, currency)} "
                f"({format_price(unit_total, currency)} x {format_number(quantity)})"
            )
            return PriceResult(
                total=total,
                breakdown=breakdown,
                quantity=quantity,
                unit_total=unit_total,
                main_units_value=main_units_value,
            )

        except QuoteConfigurationError as e:
            self.logger.error(f"Pricing configuration error: {e}")
            return PriceResult()
        except Exception as e:
            self.logger.exception(f"Pricing calculation failed: {e}")
            return PriceResult()

    def _resolve_quantity(self, values: Dict[str, Any]) -> float:
        quantity = parse_number(values.get(QUANTITY_PARAMETER))
        if quantity is None:
            return 1.0
        if quantity < 1:
            self.logger.warning(f"Quantity {quantity} is below 1, pricing as 1")
            return 1.0
        return quantity

    def _price_parameter(
        self,
        param: Parameter,
        value: Any,
        values: Dict[str, Any],
        main_param: Optional[Parameter],
        main_units_value: float,
        currency: str,
    ) -> Tuple[float, List[str]]:
        """Return one parameter's contribution and its description parts."""
        total = 0.0
        parts: List[str] = []

        # Base price is per ordered item
        if param.pricing.base_price:
            total += param.pricing.base_price
            parts.append(f"Base: {format_price(param.pricing.base_price, currency)} per item")

        if isinstance(param, FixedOptionParameter):
            option = param.find_option(value)
            if option is not None:
                total = self._price_option(
                    param, option, total, parts, values, main_param, main_units_value, currency
                )
        elif isinstance(param, (NumericValueParameter, DerivedCalcParameter)):
            scale = 1.0
            if (
                self.scale_numeric_by_main_units
                and main_param is not None
                and main_param.name != param.name
            ):
                scale = main_units_value
            total = self._price_numeric(param, value, total, parts, scale, main_param, currency)

        return total, parts

    def _price_option(
        self,
        param: FixedOptionParameter,
        option: FixedOption,
        total: float,
        parts: List[str],
        values: Dict[str, Any],
        main_param: Optional[Parameter],
        main_units_value: float,
        currency: str,
    ) -> float:
        pricing = option.pricing
        units_label = _unit_label(main_param)

        if pricing.base_price:
            total += pricing.base_price
            parts.append(
                f"{option.label or option.value}: {format_price(pricing.base_price, currency)} per item"
            )

        # Option unit price scales with the main-units value
        if pricing.unit_price:
            total += pricing.unit_price * main_units_value
            parts.append(
                f"{format_price(pricing.unit_price, currency)} x "
                f"{format_number(main_units_value)} {units_label}"
            )

        total = _apply_multiplier(pricing, total, parts)

        # Sub-options are independent add-ons keyed "{param}_{sub_option}"
        for sub in option.sub_options:
            if not values.get(f"{param.name}_{sub.value}") or not sub.price:
                continue
            if sub.pricing_scope == "per_qty":
                amount = sub.price
                detail = f"{format_price(sub.price, currency)} per item"
            else:
                amount = sub.price * main_units_value
                detail = (
                    f"{format_price(sub.price, currency)} x "
                    f"{format_number(main_units_value)} {units_label}"
                )
            if amount > 0:
                total += amount
                parts.append(f"[{sub.label or sub.value}: {detail}]")

        return total

    def _price_numeric(
        self,
        param: Parameter,
        value: Any,
        total: float,
        parts: List[str],
        scale: float,
        main_param: Optional[Parameter],
        currency: str,
    ) -> float:
        pricing = param.pricing
        number = parse_number(value) or 0.0
        total_units = number * (param.units_per_quantity or 1)
        unit = param.unit or "units"

        if pricing.unit_price:
            total += pricing.unit_price * total_units * scale
            description = (
                f"{format_number(total_units)} {unit} x {format_price(pricing.unit_price, currency)}"
            )
            if scale != 1.0:
                description += f" x {format_number(scale)} {_unit_label(main_param)}"
            parts.append(description)

        step = pricing.step_pricing
        if step is not None and total_units > step.threshold:
            steps = math.floor(total_units - step.threshold)
            total += steps * step.step_amount
            parts.append(
                f"{steps} steps above {format_number(step.threshold)} x "
                f"{format_price(step.step_amount, currency)}"
            )

        return _apply_multiplier(pricing, total, parts)


def _join_parts(parts: List[str]) -> str:
    # multipliers read "a + b x 1.3", additive parts are joined with " + "
    description = ""
    for part in parts:
        if part.startswith("x ") and description:
            description += f" {part}"
        else:
            description += f" + {part}" if description else part
    return description


def _apply_multiplier(pricing: PricingRule, total: float, parts: List[str]) -> float:
    if pricing.multiplier:
        parts.append(f"x {format_number(pricing.multiplier)}")
        return total * pricing.multiplier
    return total


def _unit_label(main_param: Optional[Parameter]) -> str:
    unit = getattr(main_param, "unit", None) if main_param is not None else None
    return unit or "units"


# Singleton instance for easy use
pricing_calculator = PricingCalculator()


def calculate_price(
    parameters: List[Parameter], values: Dict[str, Any], currency: str = "USD"
) -> PriceResult:
    """
    Convenience function to price resolved values with the default calculator.

    Args:
        parameters: The parameter set
        values: Field values with derived values resolved

    Returns:
        PriceResult with total and breakdown
    """
    return pricing_calculator.calculate_price(parameters, values, currency)
