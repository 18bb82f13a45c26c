from collections.abc import Generator
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import get_db
from app.main import app
from app.models import Assignee, Base, Ticket


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads (board gateway uses to_thread)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def assignees(db_session: Session) -> list[Assignee]:
    people = [
        Assignee(name="Ana", last_name="Pérez"),
        Assignee(name="Luis", last_name="Gómez"),
        Assignee(name="Inactivo", last_name="X", is_active=False),
    ]
    db_session.add_all(people)
    db_session.commit()
    return people


def make_ticket(db: Session, **overrides) -> Ticket:
    values = {
        "title": "Fuga de agua",
        "requester": "Marta",
        "location": "M7",
        "status": "Pendiente",
        "priority": "media",
        "is_accepted": True,
        "is_archived": False,
        "created_at": datetime(2024, 3, 5, 10, 0),
    }
    values.update(overrides)
    ticket = Ticket(**values)
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    return ticket


@pytest.fixture
def work_orders(db_session: Session, assignees) -> list[Ticket]:
    """Accepted tickets spread across the status columns, plus noise rows."""
    return [
        make_ticket(db_session, title="Fuga de agua", location="M7", priority="alta"),
        make_ticket(
            db_session,
            title="Luz quemada",
            requester="Pedro",
            location="Adrian Tropical 27",
            status="En Ejecución",
            assignee_id=assignees[0].id,
            image="fotos/luz.jpg",
            created_at=datetime(2024, 2, 1, 9, 0),
        ),
        make_ticket(
            db_session,
            title="Puerta rota",
            location="M7",
            status="Finalizadas",
            priority="baja",
            created_at=datetime(2024, 3, 10, 18, 30),
        ),
        make_ticket(db_session, title="Archivada", is_archived=True),
        make_ticket(db_session, title="Solicitud nueva", is_accepted=False),
    ]


@pytest.fixture
def ticket_factory(db_session: Session):
    def factory(**overrides) -> Ticket:
        return make_ticket(db_session, **overrides)

    return factory
