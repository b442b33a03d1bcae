"""SLA Calculator - Deadlines, breach checks and alert stages"""
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from ..domain.enums import AlertLevel, BreachSeverity, TicketPriority
from ..domain.models import (
    SlaThresholds, SlaInfo, SlaDeadlines, BreachStatus, SlaCompliance, PRIORITY_LEVELS
)
from ..utils.time import add_hours, ensure_aware, minutes_between, parse_iso, utc_now
from .business_hours import BusinessCalendar

FALLBACK_CATEGORY = "general"
FALLBACK_PRIORITY = TicketPriority.NORMAL.value


class SlaCalculator:
    """
    Pure SLA arithmetic over one SlaThresholds configuration

    Unknown categories fall back to 'general' and unknown priorities to
    'normal'; neither is an error.
    """

    def __init__(self, thresholds: SlaThresholds):
        self.thresholds = thresholds
        hours = thresholds.business_hours
        self._calendar: Optional[BusinessCalendar] = BusinessCalendar(hours) if hours.enabled else None

    # =========================================================================
    # Lookup
    # =========================================================================

    def resolve_category(self, category: Optional[str]) -> str:
        if category and category in self.thresholds.categories:
            return category
        return FALLBACK_CATEGORY

    @staticmethod
    def resolve_priority(priority: Optional[str]) -> str:
        level = (priority or "").lower()
        return level if level in PRIORITY_LEVELS else FALLBACK_PRIORITY

    def get_sla(self, priority: str, category: str = FALLBACK_CATEGORY) -> SlaInfo:
        """Response/resolution hours for a priority within a category"""
        category_key = self.resolve_category(category)
        level = self.resolve_priority(priority)
        config = self.thresholds.categories[category_key]

        return SlaInfo(
            response_time_hours=config.response_times.get(level),
            resolution_time_hours=config.resolution_times.get(level),
            escalation_threshold_percent=self.thresholds.escalation.threshold_percent,
            escalation_enabled=self.thresholds.escalation.enabled,
            notification_intervals=self.thresholds.notifications.intervals,
            category=category_key,
            priority=level,
        )

    # =========================================================================
    # Deadlines
    # =========================================================================

    def _add(self, start: datetime, hours: float) -> datetime:
        if self._calendar is not None:
            return self._calendar.add_working_hours(start, hours)
        return add_hours(start, hours)

    def calculate_deadlines(
        self,
        priority: str,
        category: str = FALLBACK_CATEGORY,
        created_at: Optional[datetime] = None
    ) -> SlaDeadlines:
        """
        Compute response, resolution and escalation deadlines

        The escalation deadline is the point where threshold_percent of the
        resolution window remains.
        """
        start = ensure_aware(created_at or utc_now())
        sla = self.get_sla(priority, category)

        escalation_hours = sla.resolution_time_hours * (1 - sla.escalation_threshold_percent / 100)

        return SlaDeadlines(
            response_deadline=self._add(start, sla.response_time_hours),
            resolution_deadline=self._add(start, sla.resolution_time_hours),
            escalation_deadline=self._add(start, escalation_hours),
            response_time_hours=sla.response_time_hours,
            resolution_time_hours=sla.resolution_time_hours,
            escalation_enabled=sla.escalation_enabled,
        )

    # =========================================================================
    # Breach
    # =========================================================================

    def check_breach(
        self,
        created_at: datetime,
        priority: str,
        category: str = FALLBACK_CATEGORY,
        now: Optional[datetime] = None
    ) -> BreachStatus:
        """Breach flags, remaining/overdue minutes and severity at `now`"""
        now = ensure_aware(now or utc_now())
        deadlines = self.calculate_deadlines(priority, category, created_at)

        response_breached = now > deadlines.response_deadline
        resolution_breached = now > deadlines.resolution_deadline
        escalation_due = now > deadlines.escalation_deadline

        return BreachStatus(
            response_breached=response_breached,
            resolution_breached=resolution_breached,
            escalation_needed=escalation_due and deadlines.escalation_enabled,
            response_time_remaining_minutes=0 if response_breached else minutes_between(now, deadlines.response_deadline),
            resolution_time_remaining_minutes=0 if resolution_breached else minutes_between(now, deadlines.resolution_deadline),
            response_overdue_minutes=minutes_between(deadlines.response_deadline, now) if response_breached else 0,
            resolution_overdue_minutes=minutes_between(deadlines.resolution_deadline, now) if resolution_breached else 0,
            severity=self._severity(response_breached, resolution_breached, escalation_due),
            alert_level=self.alert_level(deadlines.resolution_deadline, now),
            deadlines=deadlines,
        )

    @staticmethod
    def _severity(response_breached: bool, resolution_breached: bool, escalation_due: bool) -> BreachSeverity:
        if resolution_breached:
            return BreachSeverity.CRITICAL
        if response_breached:
            return BreachSeverity.HIGH
        if escalation_due:
            return BreachSeverity.MEDIUM
        return BreachSeverity.LOW

    # =========================================================================
    # Alerts
    # =========================================================================

    def alert_level(self, deadline: datetime, now: Optional[datetime] = None) -> AlertLevel:
        """
        Alert stage for a deadline

        warning/critical fire the configured minutes before the deadline,
        breach fires `breach` minutes after it and overdue once the ticket
        has been late for a full `overdue` interval.
        """
        notifications = self.thresholds.notifications
        if not notifications.enabled:
            return AlertLevel.NONE

        intervals = notifications.intervals
        now = ensure_aware(now or utc_now())
        deadline = ensure_aware(deadline)

        if now <= deadline:
            remaining = deadline - now
            if remaining > timedelta(minutes=intervals.warning):
                return AlertLevel.NONE
            if remaining > timedelta(minutes=intervals.critical):
                return AlertLevel.WARNING
            return AlertLevel.CRITICAL

        overdue = now - deadline
        if overdue < timedelta(minutes=intervals.breach):
            return AlertLevel.CRITICAL
        if overdue < timedelta(minutes=intervals.overdue):
            return AlertLevel.BREACH
        return AlertLevel.OVERDUE

    def overdue_cycle(self, deadline: datetime, now: Optional[datetime] = None) -> int:
        """Number of full overdue intervals elapsed since the deadline"""
        overdue_minutes = minutes_between(deadline, ensure_aware(now or utc_now()))
        interval = self.thresholds.notifications.intervals.overdue
        if overdue_minutes < interval:
            return 0
        return overdue_minutes // interval

    # =========================================================================
    # Compliance
    # =========================================================================

    def compliance(
        self,
        tickets: Iterable[Dict[str, Any]],
        now: Optional[datetime] = None
    ) -> SlaCompliance:
        """Share of tickets still within their response/resolution windows"""
        total = 0
        response_ok = 0
        resolution_ok = 0

        for ticket in tickets:
            total += 1
            status = self.check_breach(
                parse_iso(ticket["created_at"]),
                ticket.get("priority", FALLBACK_PRIORITY),
                ticket.get("category") or FALLBACK_CATEGORY,
                now,
            )
            if not status.response_breached:
                response_ok += 1
            if not status.resolution_breached:
                resolution_ok += 1

        return SlaCompliance(
            total_tickets=total,
            response_compliance_count=response_ok,
            resolution_compliance_count=resolution_ok,
            response_compliance_percent=round(response_ok / total * 100, 2) if total else 0,
            resolution_compliance_percent=round(resolution_ok / total * 100, 2) if total else 0,
        )
