import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from .....exceptions import TransientError

logger = logging.getLogger(__name__)


class SqlRepository:
    """Opens one session (one transaction) per repository call."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self.engine, expire_on_commit=False) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"{type(self).__name__} storage error: {e}")
            raise TransientError() from e
