"""Engine and session factory for the blob table."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import sessionmaker

from chefs_margin.db.models import Base


def make_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Write routes run as sync handlers on the threadpool
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def init_db(engine: Engine) -> sessionmaker:
    """Create tables if missing and return a session factory."""
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
