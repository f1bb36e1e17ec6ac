from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool

from .core.config import settings
from .db import models  # noqa: F401  registers tables on SQLModel.metadata

def build_engine(db_url: str, echo: bool = False):
    # Choose engine options based on database scheme
    engine_kwargs = {}

    if db_url.startswith("sqlite"):
        # SQLite specific connect args
        engine_kwargs.update({
            "connect_args": {"check_same_thread": False}
        })
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # In-memory databases only live as long as their single connection
            engine_kwargs["poolclass"] = StaticPool
    else:
        # Better resiliency for managed Postgres
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_recycle": 300,
            "pool_size": 5,
            "max_overflow": 10,
        })

    return create_engine(db_url, echo=echo, **engine_kwargs)

engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

def create_db_and_tables(target_engine=None):
    SQLModel.metadata.create_all(target_engine or engine)

def get_session():
    with Session(engine) as session:
        yield session
