"""
Cypher Statement Builder

Stateless helpers that render property values, identifiers and complete
create/update/delete statements for nodes and relationships. Arguments
are checked before any text is assembled; a BuilderContractError means
no statement was produced.

Composite values (lists, dicts) are stored as JSON strings, not as
native Cypher lists or maps.
"""

import json
import math
import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

from ..errors import BuilderContractError
from .schema import PropertyValue

PLAIN_IDENTIFIER = re.compile(r"[A-Za-z0-9_]+")

WIPE_STATEMENT = "MATCH (n) DETACH DELETE n"


class PropertyUpdate(BaseModel):
    """A single property assignment for an update statement"""
    property: str
    value: Any = None


Updates = Union[Mapping[str, PropertyValue], Sequence[PropertyUpdate]]


# ==========================================
# PRIMITIVES
# ==========================================

def escape_string(text: str) -> str:
    """Escape a string for a double-quoted Cypher literal (backslash first)"""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


def format_value(value: PropertyValue) -> str:
    """
    Render a property value as Cypher literal text.

    None -> null, booleans -> true/false, numbers verbatim, strings
    double-quoted and escaped, lists/dicts as escaped JSON strings.
    """
    if value is None:
        return "null"

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if not math.isfinite(value):
            raise BuilderContractError(f"Cannot render non-finite number {value!r}")
        return repr(value)

    if isinstance(value, str):
        return f'"{escape_string(value)}"'

    if isinstance(value, (list, tuple, dict)):
        try:
            encoded = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise BuilderContractError(f"Failed to serialize value: {e}") from e
        return f'"{escape_string(encoded)}"'

    return f'"{escape_string(str(value))}"'


def format_identifier(name: str) -> str:
    """Pass plain identifiers through; backtick-quote anything else"""
    if PLAIN_IDENTIFIER.fullmatch(name):
        return name
    return "`" + name.replace("`", "``") + "`"


def format_properties(properties: Mapping[str, PropertyValue]) -> str:
    """Render ` {key: value, ...}` or an empty string for no properties"""
    if not properties:
        return ""
    pairs = [f"{format_identifier(key)}: {format_value(value)}" for key, value in properties.items()]
    return " {" + ", ".join(pairs) + "}"


def format_labels(labels: Iterable[str]) -> str:
    return "".join(f":{format_identifier(label)}" for label in labels)


# ==========================================
# CONTRACT CHECKS
# ==========================================

def _require_labels(labels: Sequence[str]) -> List[str]:
    if isinstance(labels, str):
        labels = [labels]
    labels = list(labels or [])
    if not labels:
        raise BuilderContractError("At least one label is required to create a node")
    for label in labels:
        if not isinstance(label, str) or not label:
            raise BuilderContractError(f"Invalid label {label!r}")
    return labels


def _require_store_id(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise BuilderContractError(f"{what} must be a non-negative integer, got {value!r}")
    return value


def _require_updates(updates: Updates) -> List[PropertyUpdate]:
    if isinstance(updates, Mapping):
        items = [PropertyUpdate(property=key, value=value) for key, value in updates.items()]
    else:
        items = [u if isinstance(u, PropertyUpdate) else PropertyUpdate.model_validate(u) for u in updates or []]

    if not items:
        raise BuilderContractError("No property updates provided")
    for item in items:
        if not item.property:
            raise BuilderContractError("Property name is required for every update")
    return items


def _require_type(rel_type: str) -> str:
    if not isinstance(rel_type, str) or not rel_type:
        raise BuilderContractError("Relationship type is required")
    return rel_type


def _set_clause(variable: str, updates: List[PropertyUpdate]) -> str:
    return ", ".join(
        f"{variable}.{format_identifier(u.property)} = {format_value(u.value)}" for u in updates
    )


# ==========================================
# STATEMENTS
# ==========================================

def create_node(labels: Sequence[str], properties: Optional[Mapping[str, PropertyValue]] = None) -> str:
    """CREATE a node with the given labels and properties"""
    labels = _require_labels(labels)
    return f"CREATE (n{format_labels(labels)}{format_properties(properties or {})}) RETURN n"


def update_node(node_id: int, updates: Updates) -> str:
    """SET properties on a node identified by store id"""
    node_id = _require_store_id(node_id, "Node id")
    items = _require_updates(updates)
    return f"MATCH (n) WHERE id(n) = {node_id} SET {_set_clause('n', items)} RETURN n"


def delete_node(node_id: int, detach: bool = False, cascade: bool = False) -> str:
    """
    DELETE a node.

    detach removes its relationships too. cascade also removes every
    directly connected node; callers must confirm this explicitly.
    """
    node_id = _require_store_id(node_id, "Node id")
    if cascade:
        return (
            f"MATCH (n) WHERE id(n) = {node_id} "
            f"OPTIONAL MATCH (n)-[r]-(connected) DETACH DELETE n, connected"
        )
    keyword = "DETACH DELETE" if detach else "DELETE"
    return f"MATCH (n) WHERE id(n) = {node_id} {keyword} n"


def create_relationship(start_id: int, end_id: int, rel_type: str,
                        properties: Optional[Mapping[str, PropertyValue]] = None) -> str:
    """CREATE a relationship between two nodes identified by store id"""
    start_id = _require_store_id(start_id, "Start node id")
    end_id = _require_store_id(end_id, "End node id")
    rel_type = _require_type(rel_type)
    return (
        f"MATCH (a), (b) WHERE id(a) = {start_id} AND id(b) = {end_id} "
        f"CREATE (a)-[r:{format_identifier(rel_type)}{format_properties(properties or {})}]->(b) RETURN r"
    )


def update_relationship(rel_id: int, updates: Updates) -> str:
    """SET properties on a relationship identified by store id"""
    rel_id = _require_store_id(rel_id, "Relationship id")
    items = _require_updates(updates)
    return f"MATCH ()-[r]->() WHERE id(r) = {rel_id} SET {_set_clause('r', items)} RETURN r"


def delete_relationship(rel_id: int) -> str:
    """DELETE a relationship identified by store id"""
    rel_id = _require_store_id(rel_id, "Relationship id")
    return f"MATCH ()-[r]->() WHERE id(r) = {rel_id} DELETE r"


def wipe_statement() -> str:
    """Unconditionally remove every node and relationship"""
    return WIPE_STATEMENT


def correlation_query(external_id_key: str = "jsonId", legacy_fallback: bool = True) -> str:
    """
    Read every store id paired with its payload (external) id.

    With legacy_fallback, nodes carrying only a bare `id` property are
    included as well.
    """
    key = format_identifier(external_id_key)
    if legacy_fallback:
        return (
            f"MATCH (n) WHERE n.{key} IS NOT NULL OR n.id IS NOT NULL "
            f"RETURN id(n) AS storeId, coalesce(n.{key}, n.id) AS externalId"
        )
    return f"MATCH (n) WHERE n.{key} IS NOT NULL RETURN id(n) AS storeId, n.{key} AS externalId"
