from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import os
from pathlib import Path
from dotenv import load_dotenv
from .utils import resolve_sqlite_url

# Get DB url
load_dotenv()
# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
)
DEFAULT_BUSY_TIMEOUT = float(os.getenv("DB_BUSY_TIMEOUT", "30"))


from typing import Optional


def make_engine(
    database_url: Optional[str] = None,
    echo: bool = False,
    busy_timeout: Optional[float] = None,
):
    url = database_url or DEFAULT_SQLITE_URL
    connect_args = {}
    if url.startswith("sqlite"):
        # Concurrent draws contend on the prizes row; wait for the writer
        # holding the lock instead of failing with "database is locked".
        connect_args["timeout"] = (
            busy_timeout if busy_timeout is not None else DEFAULT_BUSY_TIMEOUT
        )
        connect_args["check_same_thread"] = False
    engine = create_engine(
        url,
        echo=echo,
        future=True,
        connect_args=connect_args,
    )
    return engine


def get_sessionmaker(engine):
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # Outcome views are built after commit
        future=True,
    )
