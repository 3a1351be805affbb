"""
Tests for query intent classification and the safety gate
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from lpgraph.query.intent import QueryClassifier, QueryIntent, SafetyGate


class TestQueryClassifier:
    """Tests for QueryClassifier"""

    def setup_method(self):
        self.classifier = QueryClassifier()

    def test_write_queries(self):
        """Test write keyword detection"""
        queries = [
            "MATCH (n) SET n.x = 1",
            "CREATE (n:Person {name: 'Alice'})",
            "MERGE (n:Person {name: 'Bob'})",
            "MATCH (n) DELETE n",
            "MATCH (n) REMOVE n.age",
            "MATCH (n) DETACH DELETE n",
            "match (n) set n.x = 1",
        ]

        for query in queries:
            assert self.classifier.classify(query) == QueryIntent.WRITE, f"Failed for: {query}"

    def test_read_queries(self):
        """Test read classification"""
        queries = [
            "MATCH (n) RETURN n LIMIT 10",
            "MATCH (n) WHERE n.mode = 'RESET' RETURN n",
            "MATCH (n:Dataset) RETURN n.created_at",
            "MATCH (n) WHERE n.name = 'OFFSET' RETURN n",
        ]

        for query in queries:
            assert self.classifier.classify(query) == QueryIntent.READ, f"Failed for: {query}"

    def test_matched_keywords(self):
        """Test matched keyword reporting"""
        analysis = self.classifier.analyze("MATCH (n) DETACH DELETE n")

        assert analysis.intent == QueryIntent.WRITE
        assert "DETACH DELETE" in analysis.matched_keywords
        assert "DELETE" in analysis.matched_keywords
        assert not analysis.blocked

    def test_gate_off_by_default(self):
        """Nothing is blocked outside hardened mode"""
        analysis = self.classifier.analyze("DROP INDEX person_name")

        assert not analysis.blocked
        assert analysis.reason is None


class TestSafetyGate:
    """Tests for the hardened-mode safety gate"""

    def setup_method(self):
        self.gate = SafetyGate(hardened=True)

    def test_blocked_queries(self):
        """Test unscoped dangerous operations"""
        queries = [
            "DROP INDEX person_name",
            "DETACH DELETE n",
            "CALL db.labels() YIELD label DELETE label",
        ]

        for query in queries:
            assert self.gate(query) is not None, f"Not blocked: {query}"

    def test_scoped_queries_pass(self):
        """MATCH scopes a delete"""
        queries = [
            "MATCH (n) DETACH DELETE n",
            "MATCH (n:Person) WHERE n.name = 'x' DELETE n",
            "MATCH (n) RETURN n",
        ]

        for query in queries:
            assert self.gate(query) is None, f"Blocked: {query}"

    def test_deleted_property_is_not_delete(self):
        """Standalone DELETE only"""
        assert self.gate("RETURN 'DELETED' AS status") is None

    def test_analyze_blocks_in_hardened_mode(self):
        analysis = QueryClassifier().analyze("DROP CONSTRAINT c", hardened=True)

        assert analysis.blocked
        assert "DROP" in analysis.reason

    def test_gate_disabled(self):
        gate = SafetyGate(hardened=False)

        assert gate("DROP INDEX person_name") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
