"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class Module(str, Enum):
    """Application module a rule belongs to"""
    HELPDESK = "helpdesk"
    LOANS = "loans"
    ASSETS = "assets"


class ConditionOperator(str, Enum):
    """Comparison operators available in the rule builder"""
    EQUALS = "="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    LESS_THAN = "<"
    GREATER_THAN_OR_EQUALS = ">="
    LESS_THAN_OR_EQUALS = "<="
    CONTAINS = "contains"
    IN = "in"


class ActionType(str, Enum):
    """Side effects a fired rule can trigger"""
    SEND_EMAIL = "send_email"
    UPDATE_STATUS = "update_status"
    ASSIGN_USER = "assign_user"
    CREATE_NOTIFICATION = "create_notification"


class TicketPriority(str, Enum):
    """Helpdesk ticket priority levels used by the SLA tables"""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class BreachSeverity(str, Enum):
    """Severity of an SLA breach check"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertLevel(str, Enum):
    """SLA alert stage derived from the notification intervals"""
    NONE = "none"
    WARNING = "warning"
    CRITICAL = "critical"
    BREACH = "breach"
    OVERDUE = "overdue"


class ConfigKind(str, Enum):
    """Kinds of configuration documents kept in system_config"""
    WORKFLOW_RULES = "workflow_rules"
    APPROVAL_MATRIX = "approval_matrix"
    SLA_THRESHOLDS = "sla_thresholds"


class NotificationStatus(str, Enum):
    """Notification outbox status"""
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class NotificationTemplateKey(str, Enum):
    """Notification template identifiers"""
    WORKFLOW_RULE_EMAIL = "WORKFLOW_RULE_EMAIL"
    SLA_WARNING = "SLA_WARNING"
    SLA_CRITICAL = "SLA_CRITICAL"
    SLA_BREACH = "SLA_BREACH"
    SLA_OVERDUE = "SLA_OVERDUE"
    SLA_ESCALATION = "SLA_ESCALATION"


class InAppNotificationCategory(str, Enum):
    """Category for the notification bell"""
    WORKFLOW = "WORKFLOW"
    SLA = "SLA"
    SYSTEM = "SYSTEM"


class AdminAuditAction(str, Enum):
    """Admin configuration commands recorded in the audit trail"""
    SAVE = "SAVE"
    DELETE = "DELETE"
    TOGGLE = "TOGGLE"
    TEST = "TEST"
    RESET = "RESET"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"
