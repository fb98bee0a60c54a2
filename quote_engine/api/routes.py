import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from quote_engine.database import (
    create_quote_form,
    get_db,
    get_quote,
    get_quote_form,
    list_quote_forms,
    list_quotes_for_form,
    update_quote_form,
)
from quote_engine.schemas.form import QuoteCreate, QuoteFormCreate, QuoteFormRead, QuoteRead
from quote_engine.schemas.parameter import dump_parameter_set
from quote_engine.schemas.quote import (
    MainUnitsRequest,
    MainUnitsResponse,
    QuoteRequest,
    QuoteResult,
    UpdateValueRequest,
)
from quote_engine.services.estimator import EstimationError, evaluate_quote, quote_pipeline
from quote_engine.services.form_state import QuoteFormState, set_main_units
from quote_engine.services.pricing_calculator import QuoteConfigurationError
from quote_engine.services.samples import list_samples, load_sample

logger = logging.getLogger(__name__)

router = APIRouter()


def _form_fields(payload: QuoteFormCreate) -> dict:
    """Serialize a form payload into the blobs stored on a QuoteForm row."""
    return {
        "name": payload.name,
        "description": payload.description,
        "currency": payload.currency,
        "parameters": dump_parameter_set(payload.parameters),
        "file_connections": [c.model_dump(by_alias=True) for c in payload.file_connections],
        "form_values": payload.form_values,
    }


@router.post("/quotes/evaluate", response_model=QuoteResult)
def evaluate(payload: QuoteRequest):
    """Price an inline parameter set against field values."""
    return evaluate_quote(payload.parameters, payload.values, payload.currency)


@router.post("/quotes/update-value", response_model=QuoteResult)
def update_value(payload: UpdateValueRequest):
    """Apply one field change (conditional reset, derived propagation) and re-price."""
    state = QuoteFormState(payload.parameters, payload.values, payload.currency)
    state.update_form_value(payload.name, payload.value)
    return state.quote()


@router.post("/parameters/main-units", response_model=MainUnitsResponse)
def change_main_units(payload: MainUnitsRequest):
    """Set or clear the main-units flag; at most one parameter keeps it."""
    try:
        parameters = set_main_units(payload.parameters, payload.parameter_id, payload.is_main)
    except QuoteConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return MainUnitsResponse(parameters=parameters)


@router.get("/samples")
def get_samples():
    return list_samples()


@router.get("/samples/{name}")
def get_sample(name: str):
    try:
        sample = load_sample(name)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {**_form_fields(sample), "quote": evaluate_quote(sample.parameters, sample.form_values, sample.currency)}


@router.post("/forms", response_model=QuoteFormRead, status_code=201)
def create_form(payload: QuoteFormCreate, db: Session = Depends(get_db)):
    """Store a quote form; its parameter set is kept as an opaque blob."""
    form = create_quote_form(db, **_form_fields(payload))
    logger.info(f"Created quote form {form.id} with {len(payload.parameters)} parameters")
    return form


@router.get("/forms", response_model=List[QuoteFormRead])
def get_forms(db: Session = Depends(get_db)):
    return list_quote_forms(db)


@router.get("/forms/{form_id}", response_model=QuoteFormRead)
def get_form(form_id: int, db: Session = Depends(get_db)):
    form = get_quote_form(db, form_id)
    if form is None:
        raise HTTPException(status_code=404, detail=f"Quote form {form_id} not found")
    return form


@router.put("/forms/{form_id}", response_model=QuoteFormRead)
def replace_form(form_id: int, payload: QuoteFormCreate, db: Session = Depends(get_db)):
    form = update_quote_form(db, form_id, **_form_fields(payload))
    if form is None:
        raise HTTPException(status_code=404, detail=f"Quote form {form_id} not found")
    return form


@router.post("/forms/{form_id}/quotes")
def create_form_quote(form_id: int, payload: QuoteCreate, db: Session = Depends(get_db)):
    """Price submitted values against a stored form and save the quote."""
    if get_quote_form(db, form_id) is None:
        raise HTTPException(status_code=404, detail=f"Quote form {form_id} not found")
    try:
        return quote_pipeline(db, form_id, payload.values)
    except EstimationError as e:
        logger.error(str(e))
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/forms/{form_id}/quotes", response_model=List[QuoteRead])
def get_form_quotes(form_id: int, db: Session = Depends(get_db)):
    return list_quotes_for_form(db, form_id)


@router.get("/quotes/{quote_id}", response_model=QuoteRead)
def read_quote(quote_id: int, db: Session = Depends(get_db)):
    quote = get_quote(db, quote_id)
    if quote is None:
        raise HTTPException(status_code=404, detail=f"Quote {quote_id} not found")
    return quote
