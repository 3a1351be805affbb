"""
Graph Schema Definitions

Defines the schema model (node kinds, relation kinds, properties and
inheritance), the graph payload elements checked against it and the
reports produced by the validator and the bulk loader.
"""

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional, Set, Tuple, Union, Literal
from enum import Enum

from ..errors import PayloadError


# Values a node or relationship property may carry
PropertyValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

ElementId = Union[int, str]


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ==========================================
# SCHEMA
# ==========================================

class PropertySchema(CamelModel):
    """
    A declared property of a node or relation kind.

    Example:
        name: "text"
        datatype: "string"
        required: True
        values: ["g", "pc"]
    """
    name: str
    datatype: Optional[str] = Field(default=None, description="string, integer, float, boolean, URI or a free-form name")
    required: bool = False
    values: List[str] = Field(default_factory=list, description="Allowed values (empty = any)")


class NodeSchema(CamelModel):
    """
    A node kind with its superclasses, properties and outgoing relations.

    `superclass` is the nearest superclass. `superclass_names` keeps every
    superclass the source listed, farthest first, including names that are
    not declared kinds themselves.
    """
    name: str
    superclass: Optional[str] = None
    superclass_names: List[str] = Field(default_factory=list)
    properties: Dict[str, PropertySchema] = Field(default_factory=dict)
    relations_out: Dict[str, List[str]] = Field(default_factory=dict, description="relation kind -> target kinds")

    def listed_superclasses(self) -> List[str]:
        """Every listed superclass, farthest first, nearest last"""
        names = list(self.superclass_names)
        if self.superclass:
            if self.superclass in names:
                names.remove(self.superclass)
            names.append(self.superclass)
        return names


class RelationSchema(CamelModel):
    """
    A relation kind.

    `domains` maps a source kind to its allowed target kinds. An empty
    mapping accepts any source, an empty target list accepts any target.
    """
    name: str
    properties: Dict[str, PropertySchema] = Field(default_factory=dict)
    domains: Dict[str, List[str]] = Field(default_factory=dict)


class Schema(CamelModel):
    """Node kinds and relation kinds keyed by name"""
    nodes: Dict[str, NodeSchema] = Field(default_factory=dict)
    relations: Dict[str, RelationSchema] = Field(default_factory=dict)

    def ancestors(self, kind: str) -> List[str]:
        """
        Superclass chain of a kind, nearest first.

        Each visited kind contributes every superclass it lists, so names
        that are not declared kinds still appear. The walk follows the
        nearest superclass and stops at an undeclared name or a repeat.
        """
        chain = []
        seen = {kind}
        visited = set()
        node = self.nodes.get(kind)

        while node is not None and node.name not in visited:
            visited.add(node.name)
            listed = node.listed_superclasses()
            for parent in reversed(listed):
                if parent not in seen:
                    chain.append(parent)
                    seen.add(parent)
            node = self.nodes.get(listed[-1]) if listed else None

        return chain

    def effective_properties(self, kind: str) -> Dict[str, PropertySchema]:
        """Inherited and own properties of a kind; own declarations win"""
        properties: Dict[str, PropertySchema] = {}

        for name in reversed([kind] + self.ancestors(kind)):
            node = self.nodes.get(name)
            if node:
                properties.update(node.properties)

        return properties

    def known_labels(self) -> Set[str]:
        """Every declared kind plus every superclass name"""
        labels = set(self.nodes)
        for node in self.nodes.values():
            labels.update(node.listed_superclasses())
        return labels


# ==========================================
# GRAPH PAYLOAD
# ==========================================

class GraphNode(BaseModel):
    """
    A node in a graph payload.

    The last label is the most specific kind.
    """
    type: Literal["node"] = "node"
    id: ElementId
    labels: List[str] = Field(default_factory=list)
    properties: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("labels", "properties", mode="before")
    @classmethod
    def _null_as_empty(cls, value, info):
        if value is None:
            return [] if info.field_name == "labels" else {}
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "type": "node",
                "id": 1,
                "labels": ["Thing", "Person"],
                "properties": {"name": "Alice"}
            }
        }


class GraphRelationship(BaseModel):
    """A relationship between two payload nodes, referenced by external id"""
    type: Literal["relationship"] = "relationship"
    id: ElementId
    start: ElementId
    end: ElementId
    label: str
    properties: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("properties", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return {} if value is None else value

    class Config:
        json_schema_extra = {
            "example": {
                "type": "relationship",
                "id": 10,
                "start": 1,
                "end": 2,
                "label": "knows",
                "properties": {}
            }
        }


class PartitionedPayload(BaseModel):
    """Payload split by element type, order preserved"""
    nodes: List[GraphNode] = Field(default_factory=list)
    relationships: List[GraphRelationship] = Field(default_factory=list)
    unknown: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = 0


def partition_payload(payload: Any) -> PartitionedPayload:
    """
    Split a raw payload into nodes and relationships.

    Raises:
        PayloadError: payload is not a list, an element is not an object,
            lacks its `type` key or does not fit its element shape
    """
    if not isinstance(payload, (list, tuple)):
        raise PayloadError("Invalid graph data. Expected an array.")

    result = PartitionedPayload(total=len(payload))

    for index, element in enumerate(payload):
        if isinstance(element, (GraphNode, GraphRelationship)):
            element = element.model_dump()
        if not isinstance(element, dict):
            raise PayloadError(f"Element {index} is not an object")
        if "type" not in element:
            raise PayloadError(f"Element {index} has no type")

        try:
            if element["type"] == "node":
                result.nodes.append(GraphNode.model_validate(element))
            elif element["type"] == "relationship":
                result.relationships.append(GraphRelationship.model_validate(element))
            else:
                result.unknown.append(element)
        except ValidationError as e:
            raise PayloadError(f"Element {index} is malformed: {e}") from e

    return result


# ==========================================
# REPORTS
# ==========================================

class ErrorKind(str, Enum):
    INVALID_LABEL = "invalid_label"
    INVALID_TYPE = "invalid_type"
    MISSING_PROPERTY = "missing_property"
    MISSING_SUPERCLASS = "missing_superclass"
    INVALID_RELATION = "invalid_relation"


class ValidationIssue(CamelModel):
    """A single diagnostic for one payload element"""
    element_id: Optional[ElementId] = None
    element_type: Literal["node", "relationship"]
    error_kind: ErrorKind
    message: str
    details: Optional[Dict[str, Any]] = None


class ValidationStats(CamelModel):
    total_elements: int = 0
    total_nodes: int = 0
    total_relations: int = 0
    validated_nodes: int = 0
    validated_relations: int = 0


class ValidationResult(CamelModel):
    """Outcome of validating a payload against a schema"""
    valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)

    def errors_for(self, element_id: ElementId) -> List[ValidationIssue]:
        return [e for e in self.errors if e.element_id == element_id]


class LoadResult(CamelModel):
    """Counts reported by a bulk load"""
    nodes_created: int = 0
    relationships_created: int = 0
    relationships_skipped: int = 0
    warnings: List[str] = Field(default_factory=list)

    def counts(self) -> Tuple[int, int]:
        return self.nodes_created, self.relationships_created
