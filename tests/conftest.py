import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quote_engine.database import Base, get_db
from quote_engine.main import app
from quote_engine.schemas.parameter import load_parameter_set


@pytest.fixture
def size_with_main_units():
    """FixedOption 'size' priced flat + per main unit, with 'qty_units' as main units."""
    return load_parameter_set(
        [
            {
                "id": "p_qty_units",
                "name": "qty_units",
                "label": "Units",
                "type": "NumericValue",
                "isMainUnits": True,
                "pricing": {},
            },
            {
                "id": "p_size",
                "name": "size",
                "label": "Size",
                "type": "FixedOption",
                "required": True,
                "pricing": {},
                "options": [
                    {"label": "Small", "value": "S", "pricing": {"base_price": 1}},
                    {"label": "Large", "value": "L", "pricing": {"base_price": 2, "unit_price": 0.5}},
                ],
            },
        ]
    )


@pytest.fixture
def chained_parameters():
    """A (input) -> B = A * 2 -> C = B + 1."""
    return load_parameter_set(
        [
            {
                "id": "p_c",
                "name": "C",
                "label": "C",
                "type": "DerivedCalc",
                "formula": "B + 1",
                "dependencies": ["B"],
                "pricing": {},
            },
            {
                "id": "p_b",
                "name": "B",
                "label": "B",
                "type": "DerivedCalc",
                "formula": "A * 2",
                "dependencies": ["A"],
                "pricing": {},
            },
            {"id": "p_a", "name": "A", "label": "A", "type": "NumericValue", "pricing": {}},
        ]
    )


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
