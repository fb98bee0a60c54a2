from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from quote_engine.core.config import DATABASE_URL

# Create SQLAlchemy engine
if DATABASE_URL.startswith("sqlite"):
    # SQLite configuration
    engine = create_engine(
        DATABASE_URL,
        echo=False,  # Set to True for SQL query logging during development
        connect_args={
            "check_same_thread": False
        },  # Allow SQLite to be used across threads
    )
else:
    # PostgreSQL configuration
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,  # Verify connections before using them
        echo=False,
    )

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


# ============================================================================
# Database Models
# ============================================================================


class QuoteForm(Base):
    """
    Quote form table - a product's pricing configuration.

    The parameter set is stored as an opaque JSON blob; only the pricing
    engine interprets it.
    """

    __tablename__ = "quote_forms"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    currency = Column(String(3), nullable=False, default="USD")

    # Configuration blobs (JSON columns)
    parameters = Column(JSON, nullable=False, default=list)
    file_connections = Column(JSON, nullable=False, default=list)
    form_values = Column(JSON, nullable=False, default=dict)  # seed field values

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationships
    quotes = relationship("Quote", back_populates="form", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<QuoteForm(id={self.id}, name={self.name}, currency={self.currency})>"


class Quote(Base):
    """
    Quotes table - one evaluated price per submission
    """

    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(Integer, ForeignKey("quote_forms.id"), nullable=False, index=True)

    # Inputs and outputs of the evaluation
    submitted_values = Column(JSON, nullable=False)
    resolved_values = Column(JSON, nullable=False)
    breakdown = Column(JSON, nullable=False)
    total_price = Column(Float, nullable=False)
    quantity = Column(Float, nullable=False, default=1.0)
    errors = Column(JSON, nullable=False, default=list)  # validation messages

    # Timestamp
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    form = relationship("QuoteForm", back_populates="quotes")

    def __repr__(self):
        return f"<Quote(id={self.id}, form_id={self.form_id}, total={self.total_price})>"


# ============================================================================
# Database Dependency for FastAPI
# ============================================================================


def get_db():
    """
    FastAPI dependency to get database session.

    Usage in routes:
        @router.get("/forms/{form_id}")
        def read_form(form_id: int, db: Session = Depends(get_db)):
            form = get_quote_form(db, form_id)
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ============================================================================
# Database Initialization
# ============================================================================


def create_tables(bind=None):
    """
    Create all tables in the database.
    Run this once during initial setup or in migrations.
    """
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind=None):
    """
    Drop all tables (use with caution, only for development).
    """
    Base.metadata.drop_all(bind=bind or engine)


# ============================================================================
# Helper Functions for Common Operations
# ============================================================================


def create_quote_form(
    db: Session,
    name: str,
    parameters: list,
    currency: str = "USD",
    description: str = None,
    file_connections: list = None,
    form_values: dict = None,
) -> QuoteForm:
    """Create a new quote form"""
    form = QuoteForm(
        name=name,
        description=description,
        currency=currency,
        parameters=parameters,
        file_connections=file_connections or [],
        form_values=form_values or {"quantity": "1"},
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    return form


def update_quote_form(db: Session, form_id: int, **fields) -> Optional[QuoteForm]:
    """Replace fields of a quote form; the parameter blob is replaced whole"""
    form = db.query(QuoteForm).filter(QuoteForm.id == form_id).first()
    if form:
        for key, value in fields.items():
            setattr(form, key, value)
        form.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(form)
    return form


def get_quote_form(db: Session, form_id: int) -> Optional[QuoteForm]:
    return db.query(QuoteForm).filter(QuoteForm.id == form_id).first()


def list_quote_forms(db: Session) -> List[QuoteForm]:
    return db.query(QuoteForm).order_by(QuoteForm.id).all()


def create_quote(
    db: Session,
    form_id: int,
    submitted_values: dict,
    resolved_values: dict,
    breakdown: list,
    total_price: float,
    quantity: float,
    errors: list,
) -> Quote:
    """Save an evaluated quote for a form"""
    quote = Quote(
        form_id=form_id,
        submitted_values=submitted_values,
        resolved_values=resolved_values,
        breakdown=breakdown,
        total_price=total_price,
        quantity=quantity,
        errors=errors,
    )
    db.add(quote)
    db.commit()
    db.refresh(quote)
    return quote


def get_quote(db: Session, quote_id: int) -> Optional[Quote]:
    return db.query(Quote).filter(Quote.id == quote_id).first()


def list_quotes_for_form(db: Session, form_id: int) -> List[Quote]:
    """Get a form's quotes, newest first"""
    return (
        db.query(Quote)
        .filter(Quote.form_id == form_id)
        .order_by(Quote.id.desc())
        .all()
    )

