"""
Query module - Handles intent classification and ad-hoc execution
"""

from .intent import QueryClassifier, QueryIntent, SafetyGate
from .executor import QueryExecutor
from .mutations import MutationService

__all__ = ["QueryClassifier", "QueryIntent", "SafetyGate", "QueryExecutor", "MutationService"]
