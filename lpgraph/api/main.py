"""
FastAPI Application

HTTP boundary for schema parsing, payload validation, bulk loading and
ad-hoc queries.
"""

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union
import logging

from config.settings import Settings, get_settings
from ..errors import BuilderContractError, ParseError, PayloadError, StoreExecutionError, UnsafeQueryError
from ..graph.loader import GraphLoader
from ..graph.neo4j_client import DatabasePort, Neo4jClient
from ..graph.schema import Schema, ValidationResult
from ..graph.schema_loader import SchemaLoader
from ..graph.statements import PropertyUpdate
from ..graph.validator import SchemaValidator
from ..query.executor import QueryExecutor
from ..query.mutations import MutationService

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="lpgraph API",
    description="Labeled property graph schemas, validation and bulk loading",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Schema loaded at startup from settings.schema_path
schema: Optional[Schema] = None
schema_loader = SchemaLoader()


# ====================
# Request/Response Models
# ====================

class SchemaParseRequest(BaseModel):
    content: Union[str, Dict[str, Any]]


class ValidateRequest(BaseModel):
    graph: Any = None
    schema_source: Optional[Union[str, Dict[str, Any]]] = Field(default=None, alias="schema")

    class Config:
        populate_by_name = True


class LoadRequest(BaseModel):
    graph: Any = None
    validate_first: bool = Field(default=False, alias="validate")

    class Config:
        populate_by_name = True


class QueryRequest(BaseModel):
    query: Optional[str] = None


class CreateNodeRequest(BaseModel):
    labels: List[str]
    properties: Dict[str, Any] = {}


class UpdateRequest(BaseModel):
    updates: Union[Dict[str, Any], List[PropertyUpdate]]


class CreateRelationshipRequest(BaseModel):
    start: int
    end: int
    type: str
    properties: Dict[str, Any] = {}


# ====================
# Dependencies
# ====================

def get_database():
    """One client per request, closed when the request ends"""
    client = Neo4jClient()
    try:
        yield client
    finally:
        client.close()


def get_schema() -> Optional[Schema]:
    return schema


# ====================
# Startup
# ====================

@app.on_event("startup")
async def startup():
    """Load the configured schema"""
    global schema

    settings = get_settings()

    logger.info("Starting lpgraph API...")

    if settings.schema_path:
        try:
            schema = schema_loader.load_file(settings.schema_path)
            logger.info(f"✓ Schema loaded from {settings.schema_path}")
        except ParseError as e:
            logger.warning(f"Failed to load schema: {e}")
    else:
        logger.info("No SCHEMA_PATH configured; validation requires an inline schema")

    logger.info("lpgraph API ready!")


# ====================
# API Endpoints
# ====================

@app.get("/")
async def root():
    """API root"""
    return {
        "name": "lpgraph API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


@app.get("/health")
async def health(current_schema: Optional[Schema] = Depends(get_schema),
                 settings: Settings = Depends(get_settings)):
    """Health check"""
    return {
        "status": "healthy",
        "schema_loaded": current_schema is not None,
        "hardened_mode": settings.hardened_mode
    }


@app.get("/api/schema", response_model=Schema)
async def get_current_schema(current_schema: Optional[Schema] = Depends(get_schema)):
    """Return the schema loaded at startup"""
    if current_schema is None:
        raise HTTPException(status_code=503, detail="Schema not loaded")
    return current_schema


@app.post("/api/schema/parse", response_model=Schema)
def parse_schema(request: SchemaParseRequest):
    """Parse a JSON or Markdown schema document"""
    try:
        return schema_loader.load(request.content)
    except ParseError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/graph/validate", response_model=ValidationResult)
def validate_graph(request: ValidateRequest, current_schema: Optional[Schema] = Depends(get_schema)):
    """
    Validate a graph payload.

    Uses the inline schema when one is supplied, otherwise the schema
    loaded at startup.
    """
    try:
        active = schema_loader.load(request.schema_source) if request.schema_source else current_schema
        if active is None:
            raise HTTPException(status_code=503, detail="Schema not loaded")
        return SchemaValidator(active).validate(request.graph)
    except (ParseError, PayloadError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/database/load")
def load_database(request: LoadRequest, db: DatabasePort = Depends(get_database),
                  current_schema: Optional[Schema] = Depends(get_schema),
                  settings: Settings = Depends(get_settings)):
    """
    Replace the database contents with a graph payload.

    Relationships that cannot be created are skipped and reported as
    warnings; the load still succeeds.
    """
    try:
        if request.validate_first:
            if current_schema is None:
                raise HTTPException(status_code=503, detail="Schema not loaded")
            validation = SchemaValidator(current_schema).validate(request.graph)
            if not validation.valid:
                return JSONResponse(status_code=422, content=validation.model_dump(mode="json", by_alias=True))

        loader = GraphLoader(
            db,
            external_id_key=settings.external_id_property,
            legacy_id_fallback=settings.legacy_id_fallback
        )
        result = loader.load(request.graph)

        return {
            "success": True,
            **result.model_dump(by_alias=True),
            "message": (
                f"Successfully loaded {result.nodes_created} nodes and "
                f"{result.relationships_created} relationships into the graph database"
            )
        }

    except HTTPException:
        raise
    except PayloadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (StoreExecutionError, BuilderContractError) as e:
        logger.error(f"Database load error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/database/query")
def run_query(request: QueryRequest, db: DatabasePort = Depends(get_database),
              settings: Settings = Depends(get_settings)):
    """Execute an ad-hoc Cypher query"""
    executor = QueryExecutor(db, hardened_mode=settings.hardened_mode)

    try:
        result = executor.run(request.query)
        return {
            "success": True,
            "intent": result.intent.value,
            "results": result.results,
            "count": result.count
        }

    except PayloadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UnsafeQueryError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except StoreExecutionError as e:
        logger.error(f"Query execution error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ====================
# Single-element mutations
# ====================

def _mutate(action):
    try:
        return action()
    except BuilderContractError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreExecutionError as e:
        logger.error(f"Mutation error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/database/nodes")
def create_node(request: CreateNodeRequest, db: DatabasePort = Depends(get_database)):
    node = _mutate(lambda: MutationService(db).create_node(request.labels, request.properties))
    return {"success": True, "node": node}


@app.patch("/api/database/nodes/{node_id}")
def update_node(node_id: int, request: UpdateRequest, db: DatabasePort = Depends(get_database)):
    node = _mutate(lambda: MutationService(db).update_node(node_id, request.updates))
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {"success": True, "node": node}


@app.delete("/api/database/nodes/{node_id}")
def delete_node(node_id: int, detach: bool = False, cascade: bool = False, confirm: bool = False,
                db: DatabasePort = Depends(get_database)):
    """Delete a node; cascade=true also needs confirm=true"""
    _mutate(lambda: MutationService(db).delete_node(node_id, detach=detach, cascade=cascade, confirm=confirm))
    return {"success": True}


@app.post("/api/database/relationships")
def create_relationship(request: CreateRelationshipRequest, db: DatabasePort = Depends(get_database)):
    relationship = _mutate(lambda: MutationService(db).create_relationship(
        request.start, request.end, request.type, request.properties
    ))
    if relationship is None:
        raise HTTPException(status_code=404, detail="Start or end node not found")
    return {"success": True, "relationship": relationship}


@app.patch("/api/database/relationships/{rel_id}")
def update_relationship(rel_id: int, request: UpdateRequest, db: DatabasePort = Depends(get_database)):
    relationship = _mutate(lambda: MutationService(db).update_relationship(rel_id, request.updates))
    if relationship is None:
        raise HTTPException(status_code=404, detail="Relationship not found")
    return {"success": True, "relationship": relationship}


@app.delete("/api/database/relationships/{rel_id}")
def delete_relationship(rel_id: int, db: DatabasePort = Depends(get_database)):
    _mutate(lambda: MutationService(db).delete_relationship(rel_id))
    return {"success": True}
