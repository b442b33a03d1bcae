"""SLA Monitor - Periodic SLA alerts and escalations for helpdesk tickets

Each alert stage (warning, critical, breach) is sent once per ticket; the
overdue reminder repeats every `overdue` interval. Alerts are de-duplicated
through the outbox dedupe key, so several servers may run the job.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pymongo.errors import PyMongoError

from ..config.settings import settings
from ..domain.enums import (
    ActionType, AlertLevel, InAppNotificationCategory, Module, NotificationTemplateKey
)
from ..domain.errors import DomainError
from ..domain.models import (
    Action, BreachStatus, NotificationOutbox, SlaThresholds, TargetEntity
)
from ..engine.action_dispatcher import ActionDispatcher
from ..engine.sla_calculator import FALLBACK_CATEGORY, FALLBACK_PRIORITY, SlaCalculator
from ..repositories.entity_repo import EntityRepository
from ..repositories.inapp_notification_repo import InAppNotificationRepository
from ..repositories.notification_repo import NotificationRepository
from ..repositories.user_repo import UserRepository
from ..services.sla_threshold_service import SlaThresholdService
from ..utils.idgen import generate_correlation_id, generate_notification_id
from ..utils.logger import get_logger, set_correlation_id
from ..utils.time import format_iso, parse_iso, utc_now

logger = get_logger(__name__)

ALERT_TEMPLATES: Dict[AlertLevel, NotificationTemplateKey] = {
    AlertLevel.WARNING: NotificationTemplateKey.SLA_WARNING,
    AlertLevel.CRITICAL: NotificationTemplateKey.SLA_CRITICAL,
    AlertLevel.BREACH: NotificationTemplateKey.SLA_BREACH,
    AlertLevel.OVERDUE: NotificationTemplateKey.SLA_OVERDUE,
}


class SlaMonitor:
    """Scan open tickets and raise SLA alerts and escalations"""

    def __init__(
        self,
        sla_service: Optional[SlaThresholdService] = None,
        entity_repo: Optional[EntityRepository] = None,
        notification_repo: Optional[NotificationRepository] = None,
        inapp_repo: Optional[InAppNotificationRepository] = None,
        user_repo: Optional[UserRepository] = None,
        dispatcher: Optional[ActionDispatcher] = None
    ):
        self.entity_repo = entity_repo or EntityRepository()
        self.sla_service = sla_service or SlaThresholdService(entity_repo=self.entity_repo)
        self.notification_repo = notification_repo or NotificationRepository()
        self.inapp_repo = inapp_repo or InAppNotificationRepository()
        self.user_repo = user_repo or UserRepository()
        self.dispatcher = dispatcher or ActionDispatcher(
            entity_repo=self.entity_repo,
            notification_repo=self.notification_repo,
            inapp_repo=self.inapp_repo
        )

    def run_once(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        One monitoring pass over the open tickets

        Returns:
            Counters: scanned, alerts, escalations, reassigned
        """
        now = now or utc_now()
        thresholds = self.sla_service.get_sla_thresholds()
        calculator = SlaCalculator(thresholds)
        summary = {"scanned": 0, "alerts": 0, "escalations": 0, "reassigned": 0}

        for ticket in self.entity_repo.list_open_tickets(limit=settings.sla_monitor_batch_size):
            ticket_id = ticket.get("id")
            if not ticket_id or not ticket.get("created_at"):
                continue
            summary["scanned"] += 1

            status = calculator.check_breach(
                parse_iso(ticket["created_at"]),
                ticket.get("priority") or FALLBACK_PRIORITY,
                ticket.get("category") or FALLBACK_CATEGORY,
                now
            )

            if self._send_alert(ticket, status, calculator, thresholds, now):
                summary["alerts"] += 1

            if status.escalation_needed:
                escalated, reassigned = self._escalate(ticket, status, thresholds)
                summary["escalations"] += int(escalated)
                summary["reassigned"] += int(reassigned)

        logger.info("SLA monitor pass complete", extra={"details": summary})
        return summary

    # =========================================================================
    # Alerts
    # =========================================================================

    def _recipients(self, ticket: Dict[str, Any], thresholds: SlaThresholds) -> List[str]:
        wanted = thresholds.notifications.recipients
        emails: List[str] = []

        if wanted.assignee and ticket.get("assigned_to"):
            assignee = self.user_repo.get_user(str(ticket["assigned_to"]))
            if assignee is not None:
                emails.append(assignee.email)
        if wanted.supervisor and ticket.get("supervisor_email"):
            emails.append(ticket["supervisor_email"])
        if wanted.admin:
            emails.extend(user.email for user in self.user_repo.list_active_users(roles=["admin"]))

        unique = []
        for email in emails:
            if email.lower() not in unique:
                unique.append(email.lower())
        return unique

    def _send_alert(
        self,
        ticket: Dict[str, Any],
        status: BreachStatus,
        calculator: SlaCalculator,
        thresholds: SlaThresholds,
        now: datetime
    ) -> bool:
        level = status.alert_level
        if level == AlertLevel.NONE:
            return False

        ticket_id = ticket["id"]
        dedupe_key = f"sla:{ticket_id}:{level.value}"
        if level == AlertLevel.OVERDUE:
            cycle = calculator.overdue_cycle(status.deadlines.resolution_deadline, now)
            dedupe_key = f"{dedupe_key}:{cycle}"

        if self.notification_repo.exists_for_dedupe_key(dedupe_key):
            return False

        recipients = self._recipients(ticket, thresholds)
        if not recipients:
            logger.warning(
                f"No recipients for SLA {level.value} alert",
                extra={"ticket_id": ticket_id}
            )
            return False

        self.notification_repo.create_notification(NotificationOutbox(
            notification_id=generate_notification_id(),
            template_key=ALERT_TEMPLATES[level],
            recipients=recipients,
            subject=f"[SLA {level.value.upper()}] {ticket.get('title') or ticket_id}",
            payload={
                "ticket_id": ticket_id,
                "priority": ticket.get("priority"),
                "category": ticket.get("category"),
                "resolution_deadline": format_iso(status.deadlines.resolution_deadline),
                "resolution_time_remaining_minutes": status.resolution_time_remaining_minutes,
                "resolution_overdue_minutes": status.resolution_overdue_minutes,
                "severity": status.severity.value,
            },
            module=Module.HELPDESK,
            entity_id=ticket_id,
            dedupe_key=dedupe_key,
            created_at=utc_now(),
        ))
        logger.info(
            f"SLA {level.value} alert queued",
            extra={"ticket_id": ticket_id, "status": level.value}
        )
        return True

    # =========================================================================
    # Escalation
    # =========================================================================

    def _escalate(
        self,
        ticket: Dict[str, Any],
        status: BreachStatus,
        thresholds: SlaThresholds
    ):
        """Notify the escalation roles once; reassign when auto_assign is on"""
        ticket_id = ticket["id"]
        dedupe_key = f"sla:{ticket_id}:escalation"
        if self.notification_repo.exists_for_dedupe_key(dedupe_key):
            return False, False

        escalation = thresholds.escalation
        users = self.user_repo.list_active_users(roles=escalation.escalation_roles)
        if not users:
            logger.warning(
                f"No users hold escalation roles {escalation.escalation_roles}",
                extra={"ticket_id": ticket_id}
            )
            return False, False

        message = (
            f"Ticket {ticket_id} has reached its escalation point "
            f"({status.resolution_time_remaining_minutes} minutes to resolution deadline)"
        )
        self.notification_repo.create_notification(NotificationOutbox(
            notification_id=generate_notification_id(),
            template_key=NotificationTemplateKey.SLA_ESCALATION,
            recipients=[user.email for user in users],
            subject=f"[SLA ESCALATION] {ticket.get('title') or ticket_id}",
            body=message,
            payload={"ticket_id": ticket_id, "severity": status.severity.value},
            module=Module.HELPDESK,
            entity_id=ticket_id,
            dedupe_key=dedupe_key,
            created_at=utc_now(),
        ))
        for user in users:
            self.inapp_repo.create_notification(
                recipient=user.email,
                category=InAppNotificationCategory.SLA,
                title="SLA escalation",
                message=message,
                module=Module.HELPDESK,
                entity_id=ticket_id,
            )

        reassigned = False
        if escalation.auto_assign:
            result = self.dispatcher.dispatch(
                [Action(type=ActionType.ASSIGN_USER, value=users[0].user_id)],
                TargetEntity(module=Module.HELPDESK, entity_id=ticket_id, facts=dict(ticket))
            )
            reassigned = result.all_succeeded

        logger.info(
            f"Ticket escalated to {len(users)} user(s)",
            extra={"ticket_id": ticket_id, "action": "escalate", "status": "reassigned" if reassigned else "notified"}
        )
        return True, reassigned


class SlaMonitorScheduler:
    """APScheduler wrapper running SlaMonitor at a fixed interval"""

    def __init__(self, monitor: Optional[SlaMonitor] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._monitor = monitor
        self._is_running = False

    @property
    def monitor(self) -> SlaMonitor:
        if self._monitor is None:
            self._monitor = SlaMonitor()
        return self._monitor

    def start(self) -> None:
        """Start the scheduler"""
        if self._is_running:
            logger.warning("SLA monitor already running")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._check_sla,
            trigger=IntervalTrigger(seconds=settings.sla_monitor_interval_seconds),
            id="check_sla",
            name="Check SLA alerts and escalations",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(
            "SLA monitor started",
            extra={"details": {"interval_seconds": settings.sla_monitor_interval_seconds}}
        )

    def stop(self) -> None:
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown()
            self._is_running = False
            logger.info("SLA monitor stopped")

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def _check_sla(self) -> None:
        set_correlation_id(generate_correlation_id())
        try:
            self.monitor.run_once()
        except (DomainError, PyMongoError) as e:
            logger.error(f"Error in SLA monitor job: {e}")


# Global scheduler instance
_scheduler: Optional[SlaMonitorScheduler] = None


def get_scheduler() -> SlaMonitorScheduler:
    """Get or create scheduler instance"""
    global _scheduler
    if _scheduler is None:
        _scheduler = SlaMonitorScheduler()
    return _scheduler


def start_scheduler() -> None:
    """Start the global scheduler"""
    get_scheduler().start()


def stop_scheduler() -> None:
    """Stop the global scheduler"""
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None
