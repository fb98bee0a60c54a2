import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from quote_engine.database import create_quote, get_quote_form
from quote_engine.schemas.parameter import Parameter, load_parameter_set
from quote_engine.schemas.quote import QuoteResult, default_field_values
from quote_engine.services.derived import resolve_derived_values
from quote_engine.services.pricing_calculator import calculate_price
from quote_engine.services.validator import validate_form_values, validate_parameter_set

logger = logging.getLogger(__name__)


class EstimationError(Exception):
    pass


def evaluate_quote(
    parameters: List[Parameter],
    values: Dict[str, Any] | None = None,
    currency: str = "USD",
) -> QuoteResult:
    """
    Run the quote evaluation stages in order:
        1. Check the parameter set for configuration mistakes
        2. Resolve derived values (visibility-aware, dependency ordered)
        3. Aggregate the price breakdown and total
        4. Validate the submitted values
    Pure: the inputs are not modified and every call starts from scratch.
    """
    submitted = dict(values) if values is not None else default_field_values()

    warnings = validate_parameter_set(parameters)
    resolved = resolve_derived_values(parameters, submitted)
    price = calculate_price(parameters, resolved, currency)
    errors = validate_form_values(parameters, resolved)

    return QuoteResult(
        values=resolved,
        errors=errors,
        warnings=warnings,
        **price.model_dump(),
    )


def quote_pipeline(db: Session, form_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Evaluate a stored quote form against submitted values and save the quote.

    Returns: dict for API response
    Throws EstimationError on failure.
    """
    form = get_quote_form(db, form_id)
    if form is None:
        raise EstimationError(f"Quote form {form_id} not found")

    try:
        parameters = load_parameter_set(form.parameters or [])
        seeded = {**(form.form_values or default_field_values()), **values}
        result = evaluate_quote(parameters, seeded, form.currency)

        quote = create_quote(
            db,
            form_id=form.id,
            submitted_values=values,
            resolved_values=result.values,
            breakdown=[line.model_dump() for line in result.breakdown],
            total_price=result.total,
            quantity=result.quantity,
            errors=result.errors,
        )
        logger.info(f"Quote {quote.id} saved for form {form.id}: {result.total}")

        return {
            "quote_id": quote.id,
            "form_id": form.id,
            "currency": form.currency,
            **result.model_dump(),
        }
    except Exception as e:
        db.rollback()
        raise EstimationError(f"Quote pipeline failed: {e}")
