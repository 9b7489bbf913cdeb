"""
Core Exceptions
================

Exception hierarchy shared by every bounded context.

Domain and application code raise these; the HTTP layer maps each family
onto a status code (see ``shared.api.middleware``) and the engine tick
logs and rolls back on anything else.
"""

from typing import Optional


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


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class InvalidPolicyException(ValidationException):
    """Raised when an SLA policy carries a negative duration."""

    def __init__(self, field_name: str, value: float):
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"SLA duration '{field_name}' must be non-negative, got {value}",
            {"field": field_name, "value": value}
        )


class MilestoneOrderException(ValidationException):
    """Raised when milestones are out of order or skip a predecessor."""

    def __init__(self, milestone: str, reason: str):
        self.milestone = milestone
        super().__init__(
            f"Milestone '{milestone}' rejected: {reason}",
            {"milestone": milestone}
        )


class PolicyLockedException(DomainException):
    """Raised when a policy edit is attempted on a completed job."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(
            f"SLA policy of job {job_id} is locked after completion",
            {"job_id": job_id}
        )


class ReminderStateException(DomainException):
    """Raised for reminder transitions the lifecycle does not allow."""

    def __init__(self, reminder_id: str, status: str, action: str):
        self.reminder_id = reminder_id
        self.status = status
        super().__init__(
            f"Cannot {action} reminder {reminder_id} in status '{status}'",
            {"reminder_id": reminder_id, "status": status, "action": action}
        )
