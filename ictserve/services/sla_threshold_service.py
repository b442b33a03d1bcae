"""SLA Threshold Service - SLA configuration and ticket deadline queries"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from ..domain.models import (
    ActorContext, BreachStatus, SlaCompliance, SlaDeadlines, SlaInfo,
    SlaThresholds, SlaThresholdsDocument
)
from ..domain.enums import AdminAuditAction, ConfigKind
from ..domain.errors import ValidationError
from ..domain.defaults import PRIORITY_LABELS, SAMPLE_TICKETS, default_sla_thresholds
from ..engine.sla_calculator import FALLBACK_CATEGORY, SlaCalculator
from ..repositories.audit_repo import AdminAuditRepository
from ..repositories.config_cache import ConfigCache, config_cache
from ..repositories.config_repo import ConfigRepository, config_id_for
from ..repositories.entity_repo import EntityRepository
from ..utils.documents import dump_json_document, load_json_document, validate_model
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

CONFIG_ID = config_id_for(ConfigKind.SLA_THRESHOLDS)


class SlaThresholdService:
    """
    Service for SLA thresholds

    All deadline arithmetic is delegated to SlaCalculator built from the
    current (cached) thresholds.
    """

    def __init__(
        self,
        config_repo: Optional[ConfigRepository] = None,
        audit_repo: Optional[AdminAuditRepository] = None,
        entity_repo: Optional[EntityRepository] = None,
        cache: Optional[ConfigCache] = None
    ):
        self.config_repo = config_repo or ConfigRepository()
        self.audit_repo = audit_repo or AdminAuditRepository()
        self.entity_repo = entity_repo or EntityRepository()
        self.cache = cache if cache is not None else config_cache

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_sla_thresholds(self) -> SlaThresholds:
        """Stored thresholds, or the defaults when none have been saved"""
        revision = self.config_repo.get_revision(CONFIG_ID)
        cached = self.cache.get(CONFIG_ID, revision)
        if cached is None:
            payload = self.config_repo.get(CONFIG_ID)
            cached = SlaThresholds.model_validate(payload if payload is not None else default_sla_thresholds())
            self.cache.set(CONFIG_ID, cached, revision)
        return cached.model_copy(deep=True)

    def calculator(self) -> SlaCalculator:
        return SlaCalculator(self.get_sla_thresholds())

    def update_sla_thresholds(
        self,
        thresholds: Union[SlaThresholds, Dict[str, Any]],
        actor: Optional[ActorContext] = None,
        action: AdminAuditAction = AdminAuditAction.SAVE
    ) -> SlaThresholds:
        """
        Validate and replace the thresholds

        Raises:
            ValidationError: schema violation, response above resolution or
                escalation threshold outside 1..50
        """
        if not isinstance(thresholds, SlaThresholds):
            thresholds = validate_model(SlaThresholds, thresholds)

        stored = thresholds.model_copy(update={"updated_at": utc_now()})
        self.config_repo.save(
            CONFIG_ID,
            ConfigKind.SLA_THRESHOLDS,
            stored.model_dump(mode="json"),
            actor_email=actor.email if actor else None
        )
        self.clear_cache()

        self.audit_repo.log_admin_action(
            action=action,
            config_kind=ConfigKind.SLA_THRESHOLDS,
            summary=f"Saved SLA thresholds for {len(stored.categories)} categories",
            actor=actor,
            details={"categories_count": len(stored.categories)}
        )
        return self.get_sla_thresholds()

    def clear_cache(self) -> None:
        self.cache.invalidate(CONFIG_ID)

    def reset_to_default(self, actor: Optional[ActorContext] = None) -> SlaThresholds:
        self.config_repo.delete(CONFIG_ID)
        self.clear_cache()
        self.audit_repo.log_admin_action(
            action=AdminAuditAction.RESET,
            config_kind=ConfigKind.SLA_THRESHOLDS,
            summary="Reset SLA thresholds to default",
            actor=actor
        )
        return self.get_sla_thresholds()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_sla_for_ticket(self, priority: str, category: str = FALLBACK_CATEGORY) -> SlaInfo:
        return self.calculator().get_sla(priority, category)

    def calculate_sla_deadlines(
        self,
        priority: str,
        category: str = FALLBACK_CATEGORY,
        start_time: Optional[datetime] = None
    ) -> SlaDeadlines:
        return self.calculator().calculate_deadlines(priority, category, start_time)

    def check_sla_breach(
        self,
        start_time: datetime,
        priority: str,
        category: str = FALLBACK_CATEGORY,
        now: Optional[datetime] = None
    ) -> BreachStatus:
        return self.calculator().check_breach(start_time, priority, category, now)

    def get_sla_compliance(
        self,
        tickets: Optional[Iterable[Dict[str, Any]]] = None,
        now: Optional[datetime] = None
    ) -> SlaCompliance:
        """Compliance over the given tickets, or over all stored helpdesk tickets"""
        if tickets is None:
            tickets = self.entity_repo.list_tickets()
        return self.calculator().compliance(tickets, now)

    def get_available_categories(self) -> Dict[str, str]:
        return {key: category.name for key, category in self.get_sla_thresholds().categories.items()}

    def get_available_priorities(self) -> Dict[str, str]:
        return dict(PRIORITY_LABELS)

    def test_sla(
        self,
        samples: Optional[List[Dict[str, Any]]] = None,
        actor: Optional[ActorContext] = None,
        start_time: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """SLA and deadlines for sample tickets ({"name", "priority", "category"})"""
        calculator = self.calculator()
        start_time = start_time or utc_now()

        results = []
        for sample in (samples if samples is not None else SAMPLE_TICKETS):
            priority = sample.get("priority", "normal")
            category = sample.get("category") or FALLBACK_CATEGORY
            results.append({
                "name": sample.get("name"),
                "priority": priority,
                "category": category,
                "sla": calculator.get_sla(priority, category).model_dump(mode="json"),
                "deadlines": calculator.calculate_deadlines(priority, category, start_time).model_dump(mode="json"),
            })

        self.audit_repo.log_admin_action(
            action=AdminAuditAction.TEST,
            config_kind=ConfigKind.SLA_THRESHOLDS,
            summary=f"Tested SLA thresholds with {len(results)} sample tickets",
            actor=actor
        )
        return results

    # =========================================================================
    # Import / Export
    # =========================================================================

    def export_thresholds(self, actor: Optional[ActorContext] = None) -> str:
        document = SlaThresholdsDocument(
            thresholds=self.get_sla_thresholds(),
            exported_at=utc_now(),
            exported_by=actor.email if actor else None,
        )
        self.audit_repo.log_admin_action(
            action=AdminAuditAction.EXPORT,
            config_kind=ConfigKind.SLA_THRESHOLDS,
            summary="Exported SLA thresholds",
            actor=actor
        )
        return dump_json_document(document.model_dump(mode="json"))

    def import_thresholds(
        self,
        raw: Union[str, bytes],
        actor: Optional[ActorContext] = None,
        max_bytes: Optional[int] = None
    ) -> SlaThresholds:
        """
        Replace the thresholds with an exported document

        Raises:
            MalformedInputError: not valid JSON
            ValidationError: missing thresholds or schema violation
        """
        data = load_json_document(raw, max_bytes=max_bytes)
        if "thresholds" not in data:
            raise ValidationError("Import data must contain thresholds", field="thresholds")
        document = validate_model(SlaThresholdsDocument, data)

        thresholds = self.update_sla_thresholds(
            document.thresholds, actor=actor, action=AdminAuditAction.IMPORT
        )
        logger.info(
            f"SLA thresholds imported ({len(thresholds.categories)} categories)",
            extra={"actor_email": actor.email if actor else None}
        )
        return thresholds
