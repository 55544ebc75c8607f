"""Error types for relationship inference."""

from typing import Optional, Dict, Any


class RelationshipError(Exception):
    """Base exception for relationship inference errors."""

    def __init__(self, message: str, code: str = "RELATIONSHIP_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for reporting."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class TableNotFoundError(RelationshipError):
    """Requested table is absent from the schema catalog."""

    def __init__(self, table: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Table not found: {table}",
            code="NOT_FOUND",
            details=details or {"table": table},
        )
        self.table = table


class ConfigurationError(RelationshipError):
    """Override or naming configuration failed validation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class SamplingUnavailableError(RelationshipError):
    """Distinct-value sampling could not run against live data."""

    def __init__(self, table: str, column: str, reason: str = ""):
        message = f"Cannot sample {table}.{column}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            code="SAMPLING_UNAVAILABLE",
            details={"table": table, "column": column},
        )


class IntrospectionError(RelationshipError):
    """Error during database introspection."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INTROSPECTION_ERROR", details=details)
