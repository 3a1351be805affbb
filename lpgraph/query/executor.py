"""
Query Executor

Runs ad-hoc Cypher queries: classifies them, applies the safety gate
and routes them to a read or write transaction.
"""

import logging
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from ..errors import PayloadError, UnsafeQueryError
from ..graph.neo4j_client import DatabasePort
from .intent import QueryClassifier, QueryIntent

logger = logging.getLogger(__name__)


class QueryResult(BaseModel):
    """Rows returned by an ad-hoc query"""
    intent: QueryIntent
    results: List[Dict[str, Any]] = Field(default_factory=list)
    count: int = 0


class QueryExecutor:
    """
    Executes ad-hoc queries against a database port.

    Usage:
        executor = QueryExecutor(client, hardened_mode=True)
        result = executor.run("MATCH (n) RETURN n LIMIT 10")
    """

    def __init__(self, db: DatabasePort, hardened_mode: bool = False, classifier: QueryClassifier = None):
        """
        Args:
            db: Database execution port
            hardened_mode: Refuse queries the safety gate flags
            classifier: Classifier to use (default: QueryClassifier())
        """
        self.db = db
        self.hardened_mode = hardened_mode
        self.classifier = classifier or QueryClassifier()

    def run(self, query: str) -> QueryResult:
        """
        Execute a query.

        Raises:
            PayloadError: query is empty or not a string
            UnsafeQueryError: hardened mode and the safety gate refused it
            StoreExecutionError: the database failed to run it
        """
        if not isinstance(query, str) or not query.strip():
            raise PayloadError("Invalid query. Expected a Cypher query string.")

        analysis = self.classifier.analyze(query, hardened=self.hardened_mode)
        if analysis.blocked:
            logger.warning(f"Blocked query: {analysis.reason}")
            raise UnsafeQueryError(f"Dangerous operations are not allowed: {analysis.reason}")

        self.db.connect()
        if analysis.intent == QueryIntent.WRITE:
            rows = self.db.execute_write(query)
        else:
            rows = self.db.execute_read(query)

        logger.info(f"Executed {analysis.intent.value} query, {len(rows)} rows")
        return QueryResult(intent=analysis.intent, results=rows, count=len(rows))
