"""
Configuration management for lpgraph
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Graph database (Bolt: Neo4j or Memgraph)
    graph_db_uri: str = Field(default="bolt://127.0.0.1:7687")
    graph_db_user: str = Field(default="")
    graph_db_password: str = Field(default="")
    graph_db_database: Optional[str] = Field(default=None, description="Target database name (Neo4j only)")

    # Safety gate for ad-hoc queries
    hardened_mode: bool = Field(default=False, description="Block unscoped DELETE/DROP queries")

    # Schema
    schema_path: Optional[str] = Field(default=None, description="JSON or Markdown schema loaded at startup")

    # Bulk loader
    external_id_property: str = Field(default="jsonId", description="Property carrying the payload id")
    legacy_id_fallback: bool = Field(default=True, description="Fall back to a bare `id` property during recovery")

    # Server
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    debug: bool = Field(default=False)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Datatype names accepted in schema sources, mapped to their canonical form
DATATYPE_ALIASES = {
    "string": "string",
    "str": "string",
    "text": "string",
    "integer": "integer",
    "int": "integer",
    "long": "integer",
    "float": "float",
    "double": "float",
    "number": "float",
    "decimal": "float",
    "boolean": "boolean",
    "bool": "boolean",
    "uri": "URI",
    "url": "URI",
}
