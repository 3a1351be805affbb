"""
Tests for the two-phase bulk loader
"""

import pytest

from lpgraph.errors import BuilderContractError, PayloadError, StoreExecutionError
from lpgraph.graph.loader import GraphLoader
from tests.fakes import FakeDatabase


def node(node_id, *labels, **properties):
    return {"type": "node", "id": node_id, "labels": list(labels) or ["Person"], "properties": properties}


def rel(rel_id, start, end, label="knows", **properties):
    return {"type": "relationship", "id": rel_id, "start": start, "end": end, "label": label,
            "properties": properties}


class TestGraphLoader:
    """Tests for GraphLoader"""

    def setup_method(self):
        self.db = FakeDatabase()
        self.loader = GraphLoader(self.db)

    def test_load_order(self):
        self.loader.load([node(1), node(2), rel(10, 1, 2)])

        writes = self.db.writes()
        assert self.db.connected
        assert writes[0] == "MATCH (n) DETACH DELETE n"
        assert writes[1].startswith("CREATE (n:Person")
        assert writes[2].startswith("CREATE (n:Person")
        assert writes[3] == "MATCH (a), (b) WHERE id(a) = 0 AND id(b) = 1 CREATE (a)-[r:knows]->(b) RETURN r"
        reads = [query for mode, query in self.db.statements if mode == "read"]
        assert len(reads) == 1 and "AS externalId" in reads[0]

    def test_external_id_property(self):
        self.loader.load([node(1, name="Alice"), node("abc")])

        writes = self.db.writes()
        assert writes[1] == 'CREATE (n:Person {name: "Alice", jsonId: 1}) RETURN n'
        assert writes[2] == 'CREATE (n:Person {jsonId: "abc"}) RETURN n'

    def test_partial_failure(self):
        payload = [node(1), node(2), node(3), rel(10, 1, 2), rel(11, 3, 99)]

        result = self.loader.load(payload)

        assert result.nodes_created == 3
        assert result.relationships_created == 1
        assert result.relationships_skipped == 1
        assert len(result.warnings) == 1
        assert "99" in result.warnings[0]

    def test_idempotent_reload(self):
        payload = [node(1), node(2), rel(10, 1, 2)]

        first = self.loader.load(payload)
        second = self.loader.load(payload)

        assert first.counts() == second.counts() == (2, 1)
        assert len(self.db.nodes) == 2

    def test_string_ids_correlate(self):
        result = self.loader.load([node("a"), node("b"), rel("r1", "a", "b")])

        assert result.counts() == (2, 1)

    def test_nulls_dropped(self):
        self.loader.load([node(1, name=None, age=3)])

        assert self.db.writes()[1] == "CREATE (n:Person {age: 3, jsonId: 1}) RETURN n"

    def test_user_json_id_replaced(self):
        self.loader.load([node(1, jsonId="mine")])

        assert self.db.writes()[1] == "CREATE (n:Person {jsonId: 1}) RETURN n"

    def test_unknown_elements_warned(self):
        result = self.loader.load([node(1), {"type": "hyperedge", "id": 5}])

        assert result.nodes_created == 1
        assert any("hyperedge" in w for w in result.warnings)

    def test_empty_payload_still_wipes(self):
        result = self.loader.load([])

        assert result.counts() == (0, 0)
        assert self.db.writes() == ["MATCH (n) DETACH DELETE n"]

    def test_invalid_payload_writes_nothing(self):
        with pytest.raises(PayloadError):
            self.loader.load({"nodes": []})

        assert self.db.statements == []

    def test_node_failure_aborts(self):
        db = FakeDatabase(fail_on=lambda q: q.startswith("CREATE (n") and "jsonId: 2" in q)

        with pytest.raises(StoreExecutionError):
            GraphLoader(db).load([node(1), node(2), node(3), rel(10, 1, 3)])

        assert not any("CREATE (a)" in q for _, q in db.statements)
        assert len(db.nodes) == 1

    def test_node_without_labels_aborts(self):
        with pytest.raises(BuilderContractError):
            self.loader.load([{"type": "node", "id": 1, "labels": [], "properties": {}}])

        assert self.db.statements == []

    def test_unrenderable_node_leaves_store_untouched(self):
        with pytest.raises(BuilderContractError):
            self.loader.load([node(1), node(2, score=float("inf"))])

        assert self.db.statements == []
        assert not self.db.connected

    def test_null_properties(self):
        self.loader.load([{"type": "node", "id": 1, "labels": ["Person"], "properties": None}])

        assert self.db.writes()[1] == "CREATE (n:Person {jsonId: 1}) RETURN n"

    def test_relationship_failure_skipped(self):
        db = FakeDatabase(fail_on=lambda q: "[r:bad" in q)

        result = GraphLoader(db).load([node(1), node(2), rel(10, 1, 2, "bad"), rel(11, 1, 2, "good")])

        assert result.relationships_created == 1
        assert result.relationships_skipped == 1
        assert "relationship 10" in result.warnings[0]

    def test_invalid_relationship_type_skipped(self):
        result = self.loader.load([node(1), node(2), {"type": "relationship", "id": 10, "start": 1,
                                                       "end": 2, "label": "", "properties": {}}])

        assert result.relationships_skipped == 1
        assert result.relationships_created == 0

    def test_custom_external_id_key(self):
        db = FakeDatabase()

        GraphLoader(db, external_id_key="extId", legacy_id_fallback=False).load([node(1)])

        assert db.writes()[1] == "CREATE (n:Person {extId: 1}) RETURN n"
        read = [q for mode, q in db.statements if mode == "read"][0]
        assert "n.extId AS externalId" in read

    def test_legacy_id_rows(self):
        db = FakeDatabase()
        loader = GraphLoader(db)
        db.execute_read = lambda query: [{"storeId": 7, "externalId": 1}, {"storeId": 8, "externalId": 2},
                                         {"storeId": 9, "externalId": None}]

        result = loader.load([node(1), node(2), rel(10, 1, 2)])

        assert result.relationships_created == 1
        assert db.writes()[-1].startswith("MATCH (a), (b) WHERE id(a) = 7 AND id(b) = 8")
