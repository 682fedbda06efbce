"""
RollCall – Custom exceptions for the question-answering pipeline.
"""


class RollCallError(Exception):
    """Base exception for pipeline errors"""
    pass


class ConfigurationError(RollCallError):
    """Raised when required configuration is missing or invalid"""
    pass


class QueryExecutionError(RollCallError):
    """Raised by the query executor when a statement fails or times out"""
    pass
