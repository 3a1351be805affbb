"""
Graph module - Schema model, validation, statement building and bulk loading
"""

from .schema import Schema, NodeSchema, RelationSchema, PropertySchema, ValidationResult, LoadResult
from .schema_loader import SchemaLoader
from .validator import SchemaValidator
from .loader import GraphLoader
from .neo4j_client import DatabasePort, Neo4jClient

__all__ = [
    "Schema",
    "NodeSchema",
    "RelationSchema",
    "PropertySchema",
    "ValidationResult",
    "LoadResult",
    "SchemaLoader",
    "SchemaValidator",
    "GraphLoader",
    "DatabasePort",
    "Neo4jClient",
]
