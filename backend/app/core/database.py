from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from app.core.config import settings

# SQLite connections get handed between the worker threads FastAPI runs dependencies on
connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

# autocommit=False: stores commit explicitly once a write is complete
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Users, sessions and files all register on this metadata
Base = declarative_base()


def get_db():
    """
    Request-scoped database session.

    Stores receive this session as their first argument; it is closed once
    the response has been sent, even if the handler raised.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
