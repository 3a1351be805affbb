"""
Graph Loader

Bulk-loads a graph payload into the database in four steps:
- Wipe: remove everything currently stored
- Nodes: one CREATE per node, tagged with its payload id
- Recovery: read back store id <-> payload id pairs
- Relationships: one CREATE per relationship, endpoints resolved by store id

Relationships whose endpoints cannot be resolved, or whose statement
fails, are skipped with a warning. A node failure aborts the load.
"""

import logging
from typing import Any, Dict, Optional

from ..errors import StoreExecutionError
from .neo4j_client import DatabasePort
from .schema import ElementId, GraphNode, LoadResult, partition_payload
from .statements import correlation_query, create_node, create_relationship, wipe_statement

logger = logging.getLogger(__name__)


class GraphLoader:
    """
    Loads graph payloads into a graph database.

    Usage:
        loader = GraphLoader(Neo4jClient())
        result = loader.load(payload)
        print(result.nodes_created, result.relationships_created)
    """

    def __init__(self, db: DatabasePort, external_id_key: str = "jsonId", legacy_id_fallback: bool = True):
        """
        Initialize the graph loader.

        Args:
            db: Database execution port
            external_id_key: Property that carries each node's payload id
            legacy_id_fallback: Also correlate nodes through a bare `id` property
        """
        self.db = db
        self.external_id_key = external_id_key
        self.legacy_id_fallback = legacy_id_fallback

    def load(self, payload: Any) -> LoadResult:
        """
        Replace the stored graph with the payload.

        Args:
            payload: List of node/relationship elements

        Returns:
            LoadResult with created/skipped counts and warnings

        Raises:
            PayloadError: payload shape is invalid (nothing is written)
            BuilderContractError: a node cannot be rendered (nothing is written)
            StoreExecutionError: wipe, node creation or recovery failed
        """
        parts = partition_payload(payload)
        result = LoadResult()

        for element in parts.unknown:
            result.warnings.append(f"Ignored element with unknown type \"{element.get('type')}\"")

        # Render every node statement up front so contract errors surface before the wipe
        node_statements = [(node, create_node(node.labels, self._node_properties(node))) for node in parts.nodes]

        self.db.connect()

        logger.warning("Wiping graph database before load")
        self.db.execute_write(wipe_statement())

        for node, statement in node_statements:
            try:
                self.db.execute_write(statement)
            except StoreExecutionError as e:
                logger.error(f"Failed to create node {node.id}, aborting load: {e}")
                raise
            result.nodes_created += 1

        correlation = self._build_correlation_map()
        logger.info(
            f"Created {result.nodes_created} nodes, mapped {len(correlation)} nodes for relationships"
        )

        for relation in parts.relationships:
            start_id = correlation.get(relation.start)
            end_id = correlation.get(relation.end)

            if start_id is None or end_id is None:
                message = (
                    f"Failed to find nodes for relationship {relation.id}: "
                    f"start={relation.start}, end={relation.end}"
                )
                logger.warning(message)
                result.warnings.append(message)
                result.relationships_skipped += 1
                continue

            try:
                statement = create_relationship(start_id, end_id, relation.label, _drop_nulls(relation.properties))
                self.db.execute_write(statement)
                result.relationships_created += 1
            except Exception as e:
                message = f"Failed to create relationship {relation.id}: {e}"
                logger.warning(message)
                result.warnings.append(message)
                result.relationships_skipped += 1

        logger.info(
            f"Loaded {result.nodes_created} nodes and {result.relationships_created} relationships "
            f"({result.relationships_skipped} skipped)"
        )
        return result

    def _node_properties(self, node: GraphNode) -> Dict[str, Any]:
        properties = _drop_nulls(node.properties)
        if self.external_id_key in properties:
            logger.warning(
                f"Node {node.id} has a `{self.external_id_key}` property; it is replaced by the payload id"
            )
        properties[self.external_id_key] = node.id
        return properties

    def _build_correlation_map(self) -> Dict[ElementId, int]:
        rows = self.db.execute_read(correlation_query(self.external_id_key, self.legacy_id_fallback))

        correlation: Dict[ElementId, int] = {}
        for row in rows:
            external_id = row.get("externalId")
            store_id = row.get("storeId")
            if not isinstance(external_id, (int, str)) or store_id is None:
                continue
            correlation[external_id] = store_id
        return correlation


def _drop_nulls(properties: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {key: value for key, value in (properties or {}).items() if value is not None}
