"""
Query Intent Classifier

Classifies ad-hoc Cypher text to decide:
1. Whether it runs in a read or a write transaction
2. Whether the safety gate should refuse it (hardened mode only)

Both checks are keyword heuristics. They are best-effort and do not
parse Cypher.
"""

import re
from typing import List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class QueryIntent(str, Enum):
    READ = "read"     # "MATCH (n) RETURN n"
    WRITE = "write"   # "MATCH (n) SET n.x = 1"


class QueryAnalysis(BaseModel):
    """Classified query"""
    intent: QueryIntent
    matched_keywords: List[str] = Field(default_factory=list)
    blocked: bool = False
    reason: Optional[str] = None


class QueryClassifier:
    """
    Classifies query text as read or write and applies the safety gate.

    Usage:
        classifier = QueryClassifier()
        classifier.classify("MATCH (n) SET n.x = 1")
        # QueryIntent.WRITE

        analysis = classifier.analyze("DELETE n", hardened=True)
        # QueryAnalysis(intent=WRITE, blocked=True, ...)
    """

    # Single-word keywords match as standalone tokens ("RESET" is not "SET")
    WRITE_KEYWORDS = ['SET', 'CREATE', 'MERGE', 'DELETE', 'REMOVE']

    # Multi-word keywords match as an exact phrase
    WRITE_PHRASES = ['DETACH DELETE']

    DANGEROUS_SUBSTRINGS = ['DROP']
    DANGEROUS_KEYWORDS = ['DELETE']
    DANGEROUS_PHRASES = ['DETACH DELETE']

    # A dangerous query that mentions this is treated as scoped
    SCOPE_KEYWORD = 'MATCH'

    _patterns = {kw: re.compile(rf'\b{kw}\b', re.IGNORECASE) for kw in WRITE_KEYWORDS}

    def classify(self, query: str) -> QueryIntent:
        """
        Classify a query.

        Args:
            query: Cypher text

        Returns:
            QueryIntent.WRITE if any write keyword is present, else READ
        """
        return QueryIntent.WRITE if self._write_keywords(query) else QueryIntent.READ

    def analyze(self, query: str, hardened: bool = False) -> QueryAnalysis:
        """
        Classify a query and, in hardened mode, run the safety gate.

        Args:
            query: Cypher text
            hardened: Apply the safety gate

        Returns:
            QueryAnalysis with intent, matched keywords and gate verdict
        """
        keywords = self._write_keywords(query)
        reason = self.check_safety(query) if hardened else None

        return QueryAnalysis(
            intent=QueryIntent.WRITE if keywords else QueryIntent.READ,
            matched_keywords=keywords,
            blocked=reason is not None,
            reason=reason
        )

    def check_safety(self, query: str) -> Optional[str]:
        """
        Safety gate.

        Returns a reason string when the query contains DROP, or a
        standalone DELETE / DETACH DELETE, without any MATCH; None when
        the query is allowed.
        """
        upper = query.upper()

        if self.SCOPE_KEYWORD in upper:
            return None

        for keyword in self.DANGEROUS_SUBSTRINGS:
            if keyword in upper:
                return f"{keyword} operations are not allowed"

        for phrase in self.DANGEROUS_PHRASES:
            if phrase in upper:
                return f"Unscoped {phrase} is not allowed"

        for keyword in self.DANGEROUS_KEYWORDS:
            if re.search(rf'\b{keyword}\b', upper):
                return f"Unscoped {keyword} is not allowed"

        return None

    def _write_keywords(self, query: str) -> List[str]:
        """Write keywords present in the query, in declaration order"""
        found = []
        upper = query.upper()

        for phrase in self.WRITE_PHRASES:
            if phrase in upper:
                found.append(phrase)

        for keyword, pattern in self._patterns.items():
            if pattern.search(query):
                found.append(keyword)

        return found


class SafetyGate:
    """
    Callable wrapper around the safety gate for a fixed mode.

    Usage:
        gate = SafetyGate(hardened=True)
        reason = gate("MATCH (n) DETACH DELETE n")   # None: scoped by MATCH
    """

    def __init__(self, hardened: bool = False, classifier: QueryClassifier = None):
        self.hardened = hardened
        self.classifier = classifier or QueryClassifier()

    def __call__(self, query: str) -> Optional[str]:
        if not self.hardened:
            return None
        return self.classifier.check_safety(query)
