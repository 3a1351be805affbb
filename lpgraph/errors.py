"""
Error taxonomy shared by the schema, loader and query layers.
"""


class LPGraphError(Exception):
    """Base class for every error raised by lpgraph"""


class ParseError(LPGraphError):
    """Schema source is malformed or missing a required section"""


class PayloadError(LPGraphError):
    """Graph payload (or ad-hoc query) does not have the expected shape"""


class BuilderContractError(LPGraphError, ValueError):
    """Statement builder was called with arguments it cannot render"""


class StoreExecutionError(LPGraphError):
    """The graph database rejected or failed to run a statement"""

    def __init__(self, message: str, statement: str = None):
        super().__init__(message)
        self.statement = statement


class UnsafeQueryError(LPGraphError):
    """Query was blocked by the safety gate"""
