"""
Shared fixtures: the etudiants collection is replaced by a MagicMock so no
test ever talks to a real MongoDB.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from database import get_students_collection
from main import app


def make_cursor(documents=None):
    """Chainable cursor double: find().sort().skip().limit().to_list()."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(documents or []))
    return cursor


def make_collection():
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId()))
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=0)
    collection.find.return_value = make_cursor()
    return collection


def make_student(**kwargs):
    student = {
        "_id": ObjectId(),
        "nom": "Dupont",
        "prenom": "Jean",
        "email": "jean.dupont@ecole.fr",
        "filiere": "Informatique",
        "annee": 2,
        "moyenne": 14.5,
        "actif": True,
        "createdAt": datetime(2024, 9, 1, tzinfo=timezone.utc),
        "updatedAt": datetime(2024, 9, 1, tzinfo=timezone.utc),
    }
    student.update(kwargs)
    return student


@pytest.fixture
def collection():
    return make_collection()


@pytest.fixture
def client(collection):
    """HTTP client whose store is the ``collection`` fixture."""
    app.dependency_overrides[get_students_collection] = lambda: collection
    # No context manager: the startup hook (index creation) must not run
    yield TestClient(app)
    app.dependency_overrides.clear()
