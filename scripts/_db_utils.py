from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session


@contextmanager
def script_session(db_url: str) -> Iterator[Session]:
    """
    One transaction for a command-line script: committed when the block
    exits cleanly, rolled back on any exception. The engine is disposed
    afterwards so scripts leave no pooled connections behind.
    """
    engine = create_engine(db_url, future=True, pool_pre_ping=True)
    try:
        with Session(engine, autoflush=False, expire_on_commit=False) as s, s.begin():
            yield s
    finally:
        engine.dispose()
