"""Domain Models - Pydantic schemas for all entities"""
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator, model_validator
from dateutil import tz

from .enums import (
    Module, ConditionOperator, ActionType, TicketPriority, BreachSeverity,
    AlertLevel, ConfigKind, NotificationStatus, NotificationTemplateKey,
    InAppNotificationCategory, AdminAuditAction
)


PRIORITY_LEVELS = [p.value for p in TicketPriority]

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Current actor context from JWT token"""
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field("", description="Portal user ID (sub claim)")
    email: EmailStr = Field(..., description="User email")
    display_name: str = Field(..., description="User display name")
    roles: List[str] = Field(default_factory=list, description="Assigned roles")


class ApproverUser(BaseModel):
    """User record consulted when picking a concrete approver"""
    model_config = ConfigDict(extra="ignore")

    user_id: str
    name: str
    email: EmailStr
    grade: str = Field(..., description="Civil service grade, e.g. '48'")
    role: str = Field(..., description="Portal role: staff, approver, admin, superuser")
    is_active: bool = True


# ============================================================================
# Condition & Action
# ============================================================================

class Condition(BaseModel):
    """Single comparison of a fact against a value"""
    model_config = ConfigDict(extra="forbid")

    field: str = Field(..., min_length=1, description="Fact key (dot notation allowed)")
    operator: ConditionOperator = Field(..., description="Comparison operator")
    value: Any = Field(..., description="Value to compare against")


class Action(BaseModel):
    """Side effect executed when a rule fires"""
    model_config = ConfigDict(extra="forbid")

    type: ActionType = Field(..., description="Action type")
    value: str = Field("", description="Primary argument: status, user id, recipient or message")
    params: Dict[str, Any] = Field(default_factory=dict, description="Extra fields (subject, body, recipients...)")


# ============================================================================
# Rules
# ============================================================================

class RuleBase(BaseModel):
    """Fields shared by workflow rules and approval rules"""
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = Field(None, description="Rule ID, assigned on first save")
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    module: Module
    priority: int = Field(0, description="Higher numbers are evaluated first")
    is_active: bool = True
    conditions: List[Condition] = Field(default_factory=list)
    sequence: Optional[int] = Field(None, description="Insertion order, breaks priority ties")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Rule(RuleBase):
    """Workflow automation rule: conditions (AND) -> actions"""
    actions: List[Action] = Field(default_factory=list)


class ApprovalRule(RuleBase):
    """Approval matrix rule routing a request to an approver level"""
    module: Module = Module.LOANS
    priority: int = Field(1, ge=1, le=100)

    asset_value_min: Optional[float] = Field(None, ge=0)
    asset_value_max: Optional[float] = Field(None, ge=0)
    asset_categories: List[str] = Field(default_factory=list, description="Empty = any category")
    applicant_grade_min: Optional[int] = Field(None, ge=1, le=60)
    applicant_grade_max: Optional[int] = Field(None, ge=1, le=60)
    duration_days_min: Optional[int] = Field(None, ge=1)
    duration_days_max: Optional[int] = Field(None, ge=1)

    approver_roles: List[str] = Field(default_factory=list)
    approver_grades: List[str] = Field(default_factory=list)
    approval_level: int = Field(1, ge=1, le=3)
    required: bool = True
    auto_approve: bool = False

    @model_validator(mode="after")
    def _check_ranges(self) -> "ApprovalRule":
        for prefix in ("asset_value", "applicant_grade", "duration_days"):
            low = getattr(self, f"{prefix}_min")
            high = getattr(self, f"{prefix}_max")
            if low is not None and high is not None and low > high:
                raise ValueError(f"{prefix}_min must not exceed {prefix}_max")
        return self


class ApprovalMatrix(BaseModel):
    """Ordered approval rules for one module"""
    model_config = ConfigDict(extra="ignore")

    version: str = "1.0"
    updated_at: Optional[datetime] = None
    rules: List[ApprovalRule] = Field(default_factory=list)


# ============================================================================
# Approval Resolution
# ============================================================================

class ApprovalRequest(BaseModel):
    """Loan or ticket attributes fed to the approval matrix"""
    model_config = ConfigDict(extra="allow")

    total_value: float = Field(0, ge=0)
    applicant_grade: Optional[int] = None
    duration_days: Optional[int] = None
    asset_categories: List[str] = Field(default_factory=list)

    @field_validator("total_value")
    @classmethod
    def _round_to_sen(cls, value: float) -> float:
        # Matrix value bands are contiguous at 0.01 resolution
        return round(value, 2)

    def to_facts(self) -> Dict[str, Any]:
        """Fact bag for optional rule conditions"""
        return self.model_dump()


class ApprovalStep(BaseModel):
    """One level of the resolved approval chain"""
    approval_level: int
    approver_roles: List[str] = Field(default_factory=list)
    approver_grades: List[str] = Field(default_factory=list)
    required: bool = True
    auto_approve: bool = False
    rule_ids: List[str] = Field(default_factory=list)


class ApprovalChain(BaseModel):
    """Ordered approval levels for a request"""
    steps: List[ApprovalStep] = Field(default_factory=list)
    auto_approved: bool = False
    requires_approval: bool = False
    matched_rule_ids: List[str] = Field(default_factory=list)


class ApproverAssignment(BaseModel):
    """Concrete approver picked for a request"""
    user_id: str
    name: str
    email: EmailStr
    grade: str
    required_grades: List[str] = Field(default_factory=list)
    fallback: Optional[str] = Field(None, description="Fallback applied, if any")


# ============================================================================
# SLA Configuration
# ============================================================================

class PriorityTimes(BaseModel):
    """Hours per ticket priority"""
    model_config = ConfigDict(extra="forbid")

    low: float = Field(..., gt=0)
    normal: float = Field(..., gt=0)
    high: float = Field(..., gt=0)
    urgent: float = Field(..., gt=0)

    def get(self, priority: str) -> Optional[float]:
        if priority in PRIORITY_LEVELS:
            return getattr(self, priority)
        return None


class SlaCategory(BaseModel):
    """Response/resolution commitments for a ticket category"""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    response_times: PriorityTimes
    resolution_times: PriorityTimes

    @model_validator(mode="after")
    def _response_within_resolution(self) -> "SlaCategory":
        for level in PRIORITY_LEVELS:
            if self.response_times.get(level) > self.resolution_times.get(level):
                raise ValueError(
                    f"response time must not exceed resolution time for priority '{level}'"
                )
        return self


class EscalationConfig(BaseModel):
    """When and to whom tickets escalate"""
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    threshold_percent: int = Field(25, ge=1, le=50, description="Escalate when this share of the window remains")
    escalation_roles: List[str] = Field(default_factory=lambda: ["admin", "superuser"])
    auto_assign: bool = True


class NotificationIntervals(BaseModel):
    """Alert intervals in minutes"""
    model_config = ConfigDict(extra="ignore")

    warning: int = Field(60, ge=1, description="Minutes before deadline")
    critical: int = Field(15, ge=1, description="Minutes before deadline")
    breach: int = Field(0, ge=0, description="Minutes after deadline for the breach alert")
    overdue: int = Field(240, ge=30, description="Repeat interval once overdue")


class NotificationRecipients(BaseModel):
    model_config = ConfigDict(extra="ignore")

    assignee: bool = True
    supervisor: bool = True
    admin: bool = True


class NotificationSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    intervals: NotificationIntervals = Field(default_factory=NotificationIntervals)
    recipients: NotificationRecipients = Field(default_factory=NotificationRecipients)


class BusinessHours(BaseModel):
    """Working-time window used for deadline arithmetic"""
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    timezone: str = "Asia/Kuala_Lumpur"
    start_time: str = "08:00"
    end_time: str = "17:00"
    working_days: List[int] = Field(
        default_factory=lambda: [1, 2, 3, 4, 5],
        description="0=Sunday .. 6=Saturday"
    )
    exclude_holidays: bool = True
    holidays: List[date] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        if tz.gettz(value) is None:
            raise ValueError(f"unknown timezone '{value}'")
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _hh_mm(cls, value: str) -> str:
        if not _TIME_PATTERN.match(value):
            raise ValueError("time must be HH:MM")
        return value

    @field_validator("working_days")
    @classmethod
    def _normalise_days(cls, value: List[int]) -> List[int]:
        days = set()
        for day in value:
            # the admin form numbers Sunday as 7
            day = 0 if day == 7 else day
            if day < 0 or day > 6:
                raise ValueError("working days must be between 0 and 6")
            days.add(day)
        return sorted(days)

    @model_validator(mode="after")
    def _window_order(self) -> "BusinessHours":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time")
        if self.enabled and not self.working_days:
            raise ValueError("at least one working day is required when business hours are enabled")
        return self


class SlaThresholds(BaseModel):
    """Complete SLA configuration"""
    model_config = ConfigDict(extra="ignore")

    version: str = "1.0"
    updated_at: Optional[datetime] = None
    categories: Dict[str, SlaCategory]
    escalation: EscalationConfig = Field(default_factory=EscalationConfig)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    business_hours: BusinessHours = Field(default_factory=BusinessHours)

    @model_validator(mode="after")
    def _has_fallback_category(self) -> "SlaThresholds":
        if "general" not in self.categories:
            raise ValueError("a 'general' category is required as the fallback")
        return self


# ============================================================================
# SLA Results
# ============================================================================

class SlaInfo(BaseModel):
    response_time_hours: float
    resolution_time_hours: float
    escalation_threshold_percent: int
    escalation_enabled: bool
    notification_intervals: NotificationIntervals
    category: str
    priority: str


class SlaDeadlines(BaseModel):
    response_deadline: datetime
    resolution_deadline: datetime
    escalation_deadline: datetime
    response_time_hours: float
    resolution_time_hours: float
    escalation_enabled: bool


class BreachStatus(BaseModel):
    response_breached: bool
    resolution_breached: bool
    escalation_needed: bool
    response_time_remaining_minutes: int
    resolution_time_remaining_minutes: int
    response_overdue_minutes: int
    resolution_overdue_minutes: int
    severity: BreachSeverity
    alert_level: AlertLevel
    deadlines: SlaDeadlines


class SlaCompliance(BaseModel):
    total_tickets: int
    response_compliance_count: int
    resolution_compliance_count: int
    response_compliance_percent: float
    resolution_compliance_percent: float


# ============================================================================
# Dispatch
# ============================================================================

class TargetEntity(BaseModel):
    """Ticket, loan or asset a rule's actions act upon"""
    module: Module
    entity_id: Optional[str] = None
    facts: Dict[str, Any] = Field(default_factory=dict)


class ActionOutcome(BaseModel):
    action_type: ActionType
    success: bool
    detail: Optional[str] = None
    error: Optional[str] = None
    dry_run: bool = False


class DispatchResult(BaseModel):
    outcomes: List[ActionOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def partial_failure(self) -> bool:
        return bool(self.failed) and bool(self.succeeded)

    def raise_for_failure(self) -> None:
        """Raise PartialFailureError when any action failed"""
        if self.failed:
            from .errors import PartialFailureError
            raise PartialFailureError(
                f"{len(self.failed)} of {len(self.outcomes)} actions failed",
                outcomes=[o.model_dump(mode="json") for o in self.outcomes]
            )


class RuleExecution(BaseModel):
    rule_id: Optional[str]
    rule_name: str
    fired: bool
    dispatch: Optional[DispatchResult] = None


class ConditionResult(BaseModel):
    field: str
    operator: ConditionOperator
    expected: Any
    actual: Any = None
    matched: bool


class RuleTestResult(BaseModel):
    data: Dict[str, Any]
    condition_result: bool
    condition_details: List[ConditionResult] = Field(default_factory=list)
    actions_would_execute: List[Action] = Field(default_factory=list)


# ============================================================================
# Notifications
# ============================================================================

class NotificationOutbox(BaseModel):
    """Queued email, delivered by the mail worker"""
    model_config = ConfigDict(extra="ignore")

    notification_id: str
    template_key: NotificationTemplateKey
    recipients: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    body: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    module: Optional[Module] = None
    entity_id: Optional[str] = None
    dedupe_key: Optional[str] = None
    status: NotificationStatus = NotificationStatus.PENDING
    retry_count: int = 0
    created_at: datetime


class InAppNotification(BaseModel):
    """Notification bell entry"""
    model_config = ConfigDict(extra="ignore")

    notification_id: str
    recipient: str
    category: InAppNotificationCategory
    title: str
    message: str
    module: Optional[Module] = None
    entity_id: Optional[str] = None
    is_read: bool = False
    created_at: datetime


# ============================================================================
# Admin Audit
# ============================================================================

class AdminAuditEvent(BaseModel):
    """Append-only record of an admin configuration command"""
    model_config = ConfigDict(extra="ignore")

    audit_event_id: str
    action: AdminAuditAction
    config_kind: ConfigKind
    module: Optional[Module] = None
    actor_email: Optional[str] = None
    actor_display_name: Optional[str] = None
    summary: str
    details: Dict[str, Any] = Field(default_factory=dict)
    correlation_id: Optional[str] = None
    timestamp: datetime


# ============================================================================
# Import / Export Documents
# ============================================================================

class RuleSetDocument(BaseModel):
    """Exported workflow rules for one module"""
    model_config = ConfigDict(extra="ignore")

    module: Module
    version: str = "1.0"
    exported_at: Optional[datetime] = None
    exported_by: Optional[str] = None
    rules: List[Rule] = Field(default_factory=list)


class ApprovalMatrixDocument(BaseModel):
    """Exported approval matrix"""
    model_config = ConfigDict(extra="ignore")

    module: Module = Module.LOANS
    matrix: ApprovalMatrix
    exported_at: Optional[datetime] = None
    exported_by: Optional[str] = None


class SlaThresholdsDocument(BaseModel):
    """Exported SLA thresholds"""
    model_config = ConfigDict(extra="ignore")

    thresholds: SlaThresholds
    exported_at: Optional[datetime] = None
    exported_by: Optional[str] = None
