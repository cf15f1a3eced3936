"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and provides fixtures
for an isolated database, upload directory, API client, users and workbooks.
"""
import os
import sys

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy.orm import sessionmaker

from config import settings
from database import build_engine, get_db, init_db
from main import app
from models import User

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SALES_ROWS = [
    ["Region", "Revenue", "Units", "Launched"],
    ["North", 1200, 10, "01/15/2024"],
    ["South", 800.5, 7, "2024-02-01"],
    [None, None, None, None],
    ["East", "950", 9, "03/01/2024"],
]


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """
    Fixture pointing the upload directory at a per-test temporary folder.

    Returns:
        str: The upload directory
    """
    directory = str(tmp_path / "uploads")
    os.makedirs(directory, exist_ok=True)
    monkeypatch.setattr(settings, "upload_dir", directory)
    return directory


@pytest.fixture
def engine(tmp_path):
    """SQLite database in the test's temporary folder with all tables created."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    """
    Fixture providing a session on the test database.

    Call ``expire_all()`` before reading rows changed through the API.
    """
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """TestClient whose requests use the test database."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def users(db_session):
    """
    Fixture creating an owner, a second user, an admin and a deactivated user.

    Returns:
        dict: Mapping of "owner", "other", "admin" and "inactive" to user ids
    """
    accounts = {
        "owner": User(username="owner", email="owner@example.com", first_name="Olivia", last_name="Owner"),
        "other": User(username="other", email="other@example.com", first_name="Oscar", last_name="Other"),
        "admin": User(username="admin", email="admin@example.com", first_name="Ada", last_name="Admin", role="admin"),
        "inactive": User(username="inactive", email="inactive@example.com", is_active=False),
    }
    db_session.add_all(accounts.values())
    db_session.commit()
    return {name: user.id for name, user in accounts.items()}


@pytest.fixture
def auth():
    """Returns a function building the identity header for a user id."""
    def build(user_id):
        return {"X-User-Id": str(user_id)}
    return build


@pytest.fixture
def make_workbook(tmp_path):
    """
    Fixture returning a factory that writes an .xlsx workbook.

    The factory takes the first sheet's rows, an optional sheet name, optional
    extra sheets ({name: rows}) and a file name, and returns the file path.
    """
    def build(rows=None, sheet_name="Sales", extra_sheets=None, filename="sales.xlsx"):
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = sheet_name
        for row in (SALES_ROWS if rows is None else rows):
            sheet.append(row)
        for name, extra_rows in (extra_sheets or {}).items():
            extra = workbook.create_sheet(name)
            for row in extra_rows:
                extra.append(row)

        path = tmp_path / filename
        workbook.save(path)
        return str(path)

    return build


@pytest.fixture
def upload(client, auth, make_workbook):
    """
    Fixture returning a function that uploads a workbook through the API.

    Returns:
        callable: upload(user_id, path=None, **form) -> response
    """
    def send(user_id, path=None, filename="sales.xlsx", content_type=XLSX_MIME, **form):
        path = path or make_workbook()
        with open(path, "rb") as handle:
            return client.post(
                "/api/files/upload",
                headers=auth(user_id),
                files={"excelFile": (filename, handle.read(), content_type)},
                data=form
            )

    return send
