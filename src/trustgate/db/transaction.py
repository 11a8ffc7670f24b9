"""Atomic unit-of-work helper for check-then-write transitions."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trustgate.core.errors import PreconditionError


@contextmanager
def atomic(db: Session, *, conflict_message: str | None = None) -> Iterator[Session]:
    """Run the enclosed reads and writes as a single transaction.

    Preconditions read inside the block should lock their rows with
    ``with_for_update()``; uniqueness that must survive concurrent writers is
    left to the database constraints. When a constraint fires and
    ``conflict_message`` is given, the violation is reported as a
    :class:`PreconditionError` instead of a raw ``IntegrityError``.

    Nothing written inside the block survives an exception.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if conflict_message is None:
            raise
        raise PreconditionError(conflict_message) from exc
    except BaseException:
        db.rollback()
        raise
