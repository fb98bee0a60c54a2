import logging

from fastapi import FastAPI

from quote_engine.api.routes import router
from quote_engine.core.config import LOG_LEVEL
from quote_engine.database import create_tables

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Print Quote Engine",
    description="Configurable pricing and quote calculation for print shops",
    version="1.0.0",
)


@app.on_event("startup")
def on_startup():
    create_tables()


@app.get("/")
def health_check():
    return {"status": "Print Quote Engine API is running"}


app.include_router(router)
