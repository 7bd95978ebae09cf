"""
DB Admin Custom Exceptions

This module provides the exception classes raised while handling database
administration requests. They follow a small hierarchy so that views can
translate any of them into the AJAX failure envelope or an inline HTML error
message without knowing the concrete cause.

Author: DSP Development Team
Version: 1.0.0
"""

from typing import Optional, Dict, Any, List


class DbAdminException(Exception):
    """
    Base exception class for all DB Admin errors.

    Attributes:
        message (str): Human-readable error message (plain text, not escaped)
        status_code (Optional[int]): HTTP status code for the response
        error_code (Optional[str]): Short machine readable identifier
        details (Optional[Dict[str, Any]]): Additional error details

    Example:
        >>> try:
        ...     DbTableExists(dbi).check("shop", "orders")
        ... except DbAdminException as e:
        ...     logger.error(f"DB Admin error: {e.message}")
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class MissingParameterError(DbAdminException):
    """Raised when required request parameters are absent or empty."""

    def __init__(self, parameters: List[str]) -> None:
        self.parameters = parameters
        message = "Missing parameter: " + ", ".join(parameters)
        super().__init__(
            message=message,
            status_code=400,
            error_code="MissingParameter",
            details={"parameters": parameters},
        )


class DatabaseNotFoundError(DbAdminException):
    """Raised when the requested database does not exist or cannot be selected."""

    def __init__(self, db: str = "") -> None:
        self.db = db
        super().__init__(
            message="No databases selected.",
            status_code=404,
            error_code="DatabaseNotFound",
            details={"db": db} if db else {},
        )


class TableNotFoundError(DbAdminException):
    """Raised when the requested table does not exist in the database."""

    def __init__(self, db: str, table: str) -> None:
        self.db = db
        self.table = table
        super().__init__(
            message=f"Table {table} not found in database {db}.",
            status_code=404,
            error_code="TableNotFound",
            details={"db": db, "table": table},
        )


class QueryFailedError(DbAdminException):
    """
    Raised when a statement fails on the managed server.

    Attributes:
        query (str): The statement that failed
        server_error (str): The error reported by the server
    """

    def __init__(self, query: str, server_error: str) -> None:
        self.query = query
        self.server_error = server_error
        super().__init__(
            message=f'The following query has failed: "{query}" MySQL said: {server_error}',
            status_code=500,
            error_code="QueryFailed",
            details={"server_error": server_error},
        )


class InsufficientPrivilegesError(DbAdminException):
    """Raised when the MySQL user lacks a privilege required by the operation."""

    def __init__(
        self,
        message: str = "You do not have the necessary privileges to perform this operation.",
        required_privilege: Optional[str] = None,
    ) -> None:
        details = {}
        if required_privilege:
            details["required_privilege"] = required_privilege

        super().__init__(
            message=message,
            status_code=403,
            error_code="Forbidden",
            details=details,
        )


class InvalidIdentifierError(DbAdminException):
    """Raised when a database or table name is not a valid MySQL identifier."""

    def __init__(self, kind: str, value: str, reason: str) -> None:
        self.kind = kind
        self.value = value
        super().__init__(
            message=f"Invalid {kind} name: {reason}",
            status_code=400,
            error_code="InvalidIdentifier",
            details={"kind": kind, "value": value},
        )
