"""
Pytest configuration and fixtures for the Taller Stock API.

Environment variables are set before anything under `app` is imported,
because settings and the application engine are built at import time.
"""

import os
import shutil
import tempfile
from decimal import Decimal

_DB_DIR = tempfile.mkdtemp(prefix="taller-stock-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.orm import sessionmaker

from app.config.database import Base, get_db
from app.core.auth.security import create_access_token
from app.core.transaction import TransactionCoordinator, get_transaction_coordinator
from app.main import app
from app.shared.database.models import Brand, EquipmentType, PartType, Product


@pytest.fixture(scope="session")
def engine():
    """SQLite file database in WAL mode with foreign keys enforced."""
    test_engine = create_engine(
        os.environ["DATABASE_URL"],
        connect_args={"check_same_thread": False}
    )

    @event.listens_for(test_engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    yield test_engine
    test_engine.dispose()
    shutil.rmtree(_DB_DIR, ignore_errors=True)


@pytest.fixture
def session_factory(engine):
    """Fresh schema for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def coordinator(session_factory):
    return TransactionCoordinator(session_factory, timeout_seconds=30)


@pytest.fixture
def client(session_factory, coordinator):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transaction_coordinator] = lambda: coordinator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token(user_id=1, email="vendedor@taller.cl", rol="vendedor")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    token = create_access_token(user_id=2, email="admin@taller.cl", rol="administrador")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def count_rows(session_factory):
    """Count rows of a model with a fresh session (no stale identity map)."""
    def _count(model, *criteria) -> int:
        with session_factory() as session:
            stmt = select(func.count()).select_from(model)
            if criteria:
                stmt = stmt.where(*criteria)
            return session.execute(stmt).scalar_one()

    return _count


@pytest.fixture
def statement_log(engine):
    """Every SQL statement issued against the test engine while active."""
    statements = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    yield statements
    event.remove(engine, "before_cursor_execute", _record)


@pytest.fixture
def catalog(db_session):
    """Two brands, two part types and one equipment type."""
    samsung = Brand(nombre="Samsung")
    apple = Brand(nombre="Apple")
    pantalla = PartType(nombre="Pantalla")
    bateria = PartType(nombre="Batería")
    celular = EquipmentType(nombre="Celular")
    db_session.add_all([samsung, apple, pantalla, bateria, celular])
    db_session.commit()
    return {
        "samsung": samsung.id,
        "apple": apple.id,
        "pantalla": pantalla.id,
        "bateria": bateria.id,
        "celular": celular.id,
    }


@pytest.fixture
def make_product(db_session):
    def _make(sku: str, nombre: str, stock: int = 10, precio: str = "1000.00", **fields) -> int:
        product = Product(sku=sku, nombre=nombre, stock=stock, precio=Decimal(precio), **fields)
        db_session.add(product)
        db_session.commit()
        return product.id

    return _make
