"""
Tests for the Neo4j-backed database port
"""

from unittest.mock import MagicMock, Mock, patch

import pytest
from neo4j.exceptions import ClientError, ServiceUnavailable

from lpgraph.errors import StoreExecutionError
from lpgraph.graph.neo4j_client import DatabasePort, Neo4jClient, convert_value


class TestNeo4jClient:
    """Test suite for Neo4jClient"""

    @pytest.fixture
    def mock_driver(self):
        """Mock driver whose managed transactions run the work function"""
        driver = MagicMock()
        session = MagicMock()
        tx = MagicMock()
        driver.session.return_value = session
        session.execute_read.side_effect = lambda work: work(tx)
        session.execute_write.side_effect = lambda work: work(tx)
        return driver, session, tx

    @pytest.fixture
    def client(self, mock_driver):
        driver, session, tx = mock_driver
        with patch("lpgraph.graph.neo4j_client.GraphDatabase.driver", return_value=driver):
            client = Neo4jClient("bolt://localhost:7687", "neo4j", "password")
            client.connect()
        return client, session, tx

    def test_initialization(self):
        client = Neo4jClient("bolt://localhost:7687", "neo4j", "password", "graph")

        assert client.uri == "bolt://localhost:7687"
        assert client.user == "neo4j"
        assert client.password == "password"
        assert client.database == "graph"
        assert client.driver is None

    def test_connect(self, mock_driver):
        driver, _, _ = mock_driver
        with patch("lpgraph.graph.neo4j_client.GraphDatabase.driver", return_value=driver) as factory:
            client = Neo4jClient("bolt://localhost:7687", "neo4j", "password")
            client.connect()
            client.connect()

        factory.assert_called_once_with("bolt://localhost:7687", auth=("neo4j", "password"))
        driver.verify_connectivity.assert_called_once()

    def test_connect_failure(self):
        driver = MagicMock()
        driver.verify_connectivity.side_effect = ServiceUnavailable("down")

        with patch("lpgraph.graph.neo4j_client.GraphDatabase.driver", return_value=driver):
            client = Neo4jClient("bolt://localhost:7687", "neo4j", "password")
            with pytest.raises(StoreExecutionError):
                client.connect()

        assert client.driver is None

    def test_read_uses_read_transaction(self, client):
        client, session, tx = client
        tx.run.return_value = [{"name": "Alice", "age": 30}]

        rows = client.execute_read("MATCH (n) RETURN n.name AS name, n.age AS age")

        assert rows == [{"name": "Alice", "age": 30}]
        tx.run.assert_called_once_with("MATCH (n) RETURN n.name AS name, n.age AS age")
        session.execute_read.assert_called_once()
        session.execute_write.assert_not_called()
        session.close.assert_called_once()

    def test_write_uses_write_transaction(self, client):
        client, session, tx = client
        tx.run.return_value = []

        client.execute_write("CREATE (n:Person) RETURN n")

        session.execute_write.assert_called_once()
        session.execute_read.assert_not_called()

    def test_query_error(self, client):
        client, session, tx = client
        tx.run.side_effect = ClientError("Invalid query")

        with pytest.raises(StoreExecutionError) as excinfo:
            client.execute_write("CREATE (")

        assert excinfo.value.statement == "CREATE ("

    def test_close(self, client):
        client, _, _ = client
        driver = client.driver

        client.close()

        driver.close.assert_called_once()
        assert client.driver is None

    def test_implements_port(self):
        assert isinstance(Neo4jClient("bolt://localhost:7687", "", ""), DatabasePort)


class TestConvertValue:
    """Tests for driver result conversion"""

    def test_plain_values(self):
        assert convert_value(5) == 5
        assert convert_value([1, {"a": "b"}]) == [1, {"a": "b"}]

    def test_node(self):
        from neo4j.graph import Node

        node = Mock(spec=Node)
        node.id = 3
        node.element_id = "4:abc:3"
        node.labels = frozenset({"Person", "Thing"})
        node.keys.return_value = ["name"]
        node.__getitem__ = Mock(return_value="Alice")

        converted = convert_value(node)

        assert converted["id"] == 3
        assert converted["labels"] == ["Person", "Thing"]
        assert converted["properties"] == {"name": "Alice"}
        assert converted["type"] == "node"
