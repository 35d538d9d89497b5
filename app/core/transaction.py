# app/core/transaction.py
import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.config.database import SessionLocal
from app.config.settings import settings
from app.core.exceptions import AppError, StorageError, TransactionTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionScope:
    """
    Manejador entregado al trabajo de una transacción.

    Todas las escrituras de una misma operación compuesta deben usar `db`;
    es la única sesión (y por lo tanto la única conexión) de la transacción.
    """

    def __init__(self, db: Session, timeout_seconds: Optional[float] = None):
        self.db = db
        self.started_at = time.monotonic()
        self.deadline = self.started_at + timeout_seconds if timeout_seconds else None

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def checkpoint(self):
        """Abortar la transacción si ya se superó el tiempo límite"""
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise TransactionTimeoutError(self.elapsed)


class TransactionCoordinator:
    """
    Delimita begin/commit/rollback sobre una única conexión del pool.

    No reintenta: un rollback es terminal para la petición.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        timeout_seconds: Optional[float] = None
    ):
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds or None

    @contextmanager
    def scope(self) -> Iterator[TransactionScope]:
        session: Session = self.session_factory()
        try:
            session.begin()
            tx = TransactionScope(session, self.timeout_seconds)
            try:
                self._apply_statement_timeout(tx)
                yield tx
                tx.checkpoint()
                session.commit()
            except AppError as e:
                session.rollback()
                logger.warning(f"↩️ Rollback ({type(e).__name__}): {e.message}")
                raise
            except SQLAlchemyError as e:
                session.rollback()
                logger.warning(f"↩️ Rollback por error de base de datos: {type(e).__name__}")
                raise StorageError(cause=e) from e
            except BaseException:
                session.rollback()
                logger.warning("↩️ Rollback por excepción inesperada")
                raise
        finally:
            session.close()

    def run_in_transaction(self, work: Callable[[TransactionScope], T]) -> T:
        """Ejecutar `work` dentro de una transacción y devolver su resultado"""
        with self.scope() as tx:
            return work(tx)

    def _apply_statement_timeout(self, tx: TransactionScope):
        if tx.deadline is None:
            return
        if tx.db.get_bind().dialect.name == "postgresql":
            # SET LOCAL no acepta parámetros; el valor es un entero calculado aquí
            millis = int(self.timeout_seconds * 1000)
            tx.db.execute(text(f"SET LOCAL statement_timeout = {millis}"))


def get_transaction_coordinator() -> TransactionCoordinator:
    """Dependencia FastAPI: coordinador ligado al pool de la aplicación"""
    return TransactionCoordinator(SessionLocal, settings.transaction_timeout_seconds)
