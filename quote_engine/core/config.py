import os

from dotenv import load_dotenv

load_dotenv()

# Database configuration
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///./print_quotes.db",  # SQLite fallback for development
)

# Currency used when a form or request does not name one
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD").upper()

# Upper bound on derived-value recompute passes (guards against cyclic formulas)
MAX_DERIVED_ITERATIONS = int(os.getenv("MAX_DERIVED_ITERATIONS", "10"))

# Whether NumericValue/DerivedCalc unit prices scale with the main-units value
SCALE_NUMERIC_UNIT_PRICE_BY_MAIN_UNITS = (
    os.getenv("SCALE_NUMERIC_UNIT_PRICE_BY_MAIN_UNITS", "true").lower() == "true"
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
