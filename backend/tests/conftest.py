import sys
from importlib import reload
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def database(tmp_path, monkeypatch):
    db_path = tmp_path / "applytics.db"
    monkeypatch.setenv("APPLYTICS_DATABASE_URL", f"sqlite:///{db_path}")

    from backend.applytics import database as database_module
    from backend.applytics.models import Base

    reload(database_module)
    Base.metadata.create_all(bind=database_module.engine)

    yield database_module

    database_module.engine.dispose()


@pytest.fixture
def session(database):
    with database.SessionLocal() as db:
        yield db
