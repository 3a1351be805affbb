"""
Mutation Service

Single-element create/update/delete against the database, built on the
statement builder.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..errors import BuilderContractError
from ..graph.neo4j_client import DatabasePort
from ..graph.statements import (
    Updates,
    create_node,
    create_relationship,
    delete_node,
    delete_relationship,
    update_node,
    update_relationship,
)

logger = logging.getLogger(__name__)


class MutationService:
    """
    Creates, updates and deletes individual nodes and relationships.

    Usage:
        mutations = MutationService(client)
        node = mutations.create_node(["Person"], {"name": "Alice"})
        mutations.update_node(node["id"], {"name": "Alicia"})
        mutations.delete_node(node["id"], detach=True)
    """

    def __init__(self, db: DatabasePort):
        self.db = db

    def create_node(self, labels: Sequence[str], properties: Optional[Mapping[str, Any]] = None) -> Optional[Dict]:
        rows = self._write(create_node(labels, properties))
        return _first(rows, "n")

    def update_node(self, node_id: int, updates: Updates) -> Optional[Dict]:
        rows = self._write(update_node(node_id, updates))
        return _first(rows, "n")

    def delete_node(self, node_id: int, detach: bool = False, cascade: bool = False,
                    confirm: bool = False) -> None:
        """
        Delete a node.

        Cascade deletion also removes every neighbouring node and must be
        confirmed with confirm=True.
        """
        if cascade and not confirm:
            raise BuilderContractError("Cascade delete removes neighbouring nodes and requires confirmation")
        statement = delete_node(node_id, detach=detach, cascade=cascade)
        if cascade:
            logger.warning(f"Cascade-deleting node {node_id} and its neighbours")
        self._write(statement)

    def create_relationship(self, start_id: int, end_id: int, rel_type: str,
                            properties: Optional[Mapping[str, Any]] = None) -> Optional[Dict]:
        rows = self._write(create_relationship(start_id, end_id, rel_type, properties))
        return _first(rows, "r")

    def update_relationship(self, rel_id: int, updates: Updates) -> Optional[Dict]:
        rows = self._write(update_relationship(rel_id, updates))
        return _first(rows, "r")

    def delete_relationship(self, rel_id: int) -> None:
        self._write(delete_relationship(rel_id))

    def _write(self, statement: str) -> List[Dict[str, Any]]:
        self.db.connect()
        return self.db.execute_write(statement)


def _first(rows: List[Dict[str, Any]], key: str) -> Optional[Dict]:
    if not rows:
        return None
    return rows[0].get(key)
