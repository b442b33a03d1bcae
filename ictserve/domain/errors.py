"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""
    
    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Specific permission denied"""
    error_code = "PERMISSION_DENIED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400
    
    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, details=details)
        self.field = field


class MalformedInputError(ValidationError):
    """Import file is not well-formed JSON"""
    error_code = "MALFORMED_INPUT"


class RuleValidationError(ValidationError):
    """Rule definition failed validation"""
    error_code = "RULE_VALIDATION_ERROR"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class RuleNotFoundError(NotFoundError):
    """Rule id does not exist (deleted or never created)"""
    error_code = "RULE_NOT_FOUND"


class EntityNotFoundError(NotFoundError):
    """Ticket, loan or asset not found"""
    error_code = "ENTITY_NOT_FOUND"


class ApproverNotFoundError(NotFoundError):
    """No user can approve the request"""
    error_code = "APPROVER_NOT_FOUND"


# Engine Errors
class EngineError(DomainError):
    """Rule engine error"""
    error_code = "ENGINE_ERROR"
    http_status = 500


class ActionExecutionError(EngineError):
    """A single action failed to execute"""
    error_code = "ACTION_EXECUTION_ERROR"


class PartialFailureError(EngineError):
    """Some actions of a rule failed while others succeeded"""
    error_code = "PARTIAL_FAILURE"
    http_status = 207
    
    def __init__(self, message: str, outcomes: List[Dict[str, Any]]):
        super().__init__(message, details={"outcomes": outcomes})
        self.outcomes = outcomes
