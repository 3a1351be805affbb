"""
Shared fixtures
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.fakes import FakeDatabase


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def person_schema_dict():
    return {
        "nodes": {
            "Person": {
                "properties": {
                    "name": {"datatype": "string", "required": True}
                }
            }
        },
        "relations": {
            "knows": {"from": "Person", "to": "Person"}
        }
    }


@pytest.fixture
def person_payload():
    return [
        {"type": "node", "id": 1, "labels": ["Person"], "properties": {"name": "Alice"}},
        {"type": "node", "id": 2, "labels": ["Person"], "properties": {}},
        {"type": "relationship", "id": 10, "start": 1, "end": 2, "label": "knows", "properties": {}},
    ]
