"""
Neo4j Client

Database execution port backed by the official neo4j driver. Works with
any Bolt server (Neo4j, Memgraph).
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable
from neo4j import GraphDatabase, Driver
from neo4j.exceptions import DriverError, Neo4jError
from neo4j.graph import Node, Path, Relationship
from contextlib import contextmanager
import logging

from config.settings import get_settings
from ..errors import StoreExecutionError

logger = logging.getLogger(__name__)


@runtime_checkable
class DatabasePort(Protocol):
    """What the loader, executor and mutation service need from a store"""

    def connect(self) -> Any: ...

    def execute_read(self, query: str) -> List[Dict[str, Any]]: ...

    def execute_write(self, query: str) -> List[Dict[str, Any]]: ...

    def close(self) -> None: ...


class Neo4jClient:
    """
    Neo4j database client.

    Usage:
        client = Neo4jClient()
        client.connect()

        rows = client.execute_read("MATCH (n) RETURN n LIMIT 10")
        client.execute_write("CREATE (n:Person {name: \"Alice\"})")

        client.close()
    """

    def __init__(self, uri: str = None, user: str = None, password: str = None, database: str = None):
        """
        Initialize Neo4j client.

        Args:
            uri: Bolt URI (defaults to settings)
            user: Username (defaults to settings)
            password: Password (defaults to settings)
            database: Database name (defaults to settings; None = server default)
        """
        settings = get_settings()
        self.uri = uri or settings.graph_db_uri
        self.user = user if user is not None else settings.graph_db_user
        self.password = password if password is not None else settings.graph_db_password
        self.database = database or settings.graph_db_database
        self.driver: Optional[Driver] = None

    def connect(self) -> "Neo4jClient":
        """Establish connection to the database (no-op when already connected)"""
        if self.driver:
            return self
        if not self.uri:
            raise ValueError("GRAPH_DB_URI not configured")

        try:
            self.driver = GraphDatabase.driver(self.uri, auth=(self.user, self.password))
            self.driver.verify_connectivity()
        except (DriverError, Neo4jError) as e:
            self.driver = None
            logger.error(f"Failed to connect to graph database at {self.uri}: {e}")
            raise StoreExecutionError(f"Failed to connect to graph database: {e}") from e

        logger.info(f"Connected to graph database at {self.uri}")
        return self

    def close(self):
        """Close the connection"""
        if self.driver:
            self.driver.close()
            self.driver = None

    def __enter__(self) -> "Neo4jClient":
        return self.connect()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @contextmanager
    def session(self):
        """Get a session"""
        if not self.driver:
            self.connect()
        session = self.driver.session(database=self.database) if self.database else self.driver.session()
        try:
            yield session
        finally:
            session.close()

    # ==========================================
    # EXECUTION
    # ==========================================

    def execute_read(self, query: str) -> List[Dict[str, Any]]:
        """Run a query in a managed read transaction"""
        return self._execute(query, write=False)

    def execute_write(self, query: str) -> List[Dict[str, Any]]:
        """Run a query in a managed write transaction"""
        return self._execute(query, write=True)

    def _execute(self, query: str, write: bool) -> List[Dict[str, Any]]:
        def work(tx):
            result = tx.run(query)
            return [
                {key: convert_value(record[key]) for key in record.keys()}
                for record in result
            ]

        try:
            with self.session() as session:
                if write:
                    return session.execute_write(work)
                return session.execute_read(work)
        except (DriverError, Neo4jError) as e:
            kind = "Write" if write else "Read"
            logger.error(f"{kind} query execution failed: {e}")
            raise StoreExecutionError(str(e), statement=query) from e


# ==========================================
# RESULT CONVERSION
# ==========================================

def convert_value(value: Any) -> Any:
    """Convert driver graph types into plain dicts and lists"""
    if isinstance(value, Node):
        return {
            "id": value.id,
            "elementId": value.element_id,
            "labels": sorted(value.labels),
            "properties": convert_properties(dict(value)),
            "type": "node",
        }

    if isinstance(value, Relationship):
        return {
            "id": value.id,
            "elementId": value.element_id,
            "type": value.type,
            "start": value.start_node.id if value.start_node is not None else None,
            "end": value.end_node.id if value.end_node is not None else None,
            "properties": convert_properties(dict(value)),
        }

    if isinstance(value, Path):
        return {
            "start": convert_value(value.start_node),
            "end": convert_value(value.end_node),
            "segments": [
                {
                    "start": convert_value(rel.start_node),
                    "relationship": convert_value(rel),
                    "end": convert_value(rel.end_node),
                }
                for rel in value.relationships
            ],
        }

    if isinstance(value, list):
        return [convert_value(v) for v in value]

    if isinstance(value, dict):
        return convert_properties(value)

    return value


def convert_properties(properties: Dict[str, Any]) -> Dict[str, Any]:
    return {key: convert_value(value) for key, value in properties.items()}
