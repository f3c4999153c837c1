"""
This is the canonical Unit of Work boundary for mediaimport. All transactional changes must go through this.

Do not open ad hoc sessions elsewhere.

A synchronisation run holds exactly one unit of work from start to finish;
sub-phases of a run (a single item, a cleanup pass) are nested SAVEPOINTs
inside it.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator

from sqlalchemy.orm import Session, sessionmaker

from . import db as db_module


@contextlib.contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Database session context manager over an explicit session factory.

    Provides Unit of Work semantics:
    - Opens a DB session
    - Yields it for use
    - On success: commits the transaction
    - On exception: rolls back and re-raises the exception
    - Always closes the session
    """
    db = factory()
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()


@contextlib.contextmanager
def session() -> Generator[Session, None, None]:
    """
    Database session context manager for CLI operations and batch jobs.

    Usage:
        with session() as db:
            # perform database operations
            db.add(some_object)
            # transaction will be committed automatically on success
    """
    with session_scope(db_module.SessionLocal) as db:
        yield db


@contextlib.contextmanager
def savepoint(db: Session) -> Generator[Session, None, None]:
    """
    Nested transaction for one sub-phase of a unit of work.

    Everything written inside the block is released on success and rolled
    back to the savepoint on exception; the exception is re-raised.
    """
    nested = db.begin_nested()
    try:
        yield db
    except BaseException:
        if nested.is_active:
            nested.rollback()
        raise
    else:
        if nested.is_active:
            nested.commit()
