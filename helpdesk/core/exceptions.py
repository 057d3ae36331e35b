"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional, Any


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class InvalidPriorityException(DomainException):
    """Raised when a priority is outside the SLA policy table."""

    def __init__(self, priority: Any, details: Optional[dict] = None):
        self.priority = priority
        super().__init__(
            f"Invalid priority: {priority!r}",
            details or {"priority": str(priority)}
        )


class InvalidTimestampException(DomainException):
    """
    Raised when ticket lifecycle timestamps contradict each other.

    Typically a resolved_at earlier than created_at. Treated as a
    data-integrity error; never retried.
    """

    def __init__(
        self,
        ticket_id: str,
        field_name: str,
        value: Any,
        created_at: Any,
        details: Optional[dict] = None
    ):
        self.ticket_id = ticket_id
        self.field_name = field_name
        self.value = value
        self.created_at = created_at
        super().__init__(
            f"{field_name} cannot be before created_at for ticket {ticket_id}",
            details or {
                "ticket_id": ticket_id,
                "field": field_name,
                "value": str(value),
                "created_at": str(created_at),
            }
        )
