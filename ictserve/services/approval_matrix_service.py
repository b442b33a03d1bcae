"""Approval Matrix Service - Approval routing for loans and tickets"""
from typing import Any, Dict, List, Optional, Union

from ..domain.models import (
    ActorContext, ApprovalChain, ApprovalMatrix, ApprovalMatrixDocument,
    ApprovalRequest, ApprovalRule, ApproverAssignment, ApproverUser
)
from ..domain.enums import AdminAuditAction, ConfigKind, Module
from ..domain.errors import ApproverNotFoundError, RuleValidationError, ValidationError
from ..domain.defaults import (
    APPROVER_ROLES, ASSET_CATEGORIES, AVAILABLE_GRADES, AVAILABLE_ROLES,
    FALLBACK_APPROVER_GRADE, SAMPLE_LOAN_REQUESTS, default_approval_matrix
)
from ..domain.vocabulary import is_valid_field
from ..engine.approval_resolver import ApprovalResolver
from ..engine.ordering import order_by_priority
from ..repositories.audit_repo import AdminAuditRepository
from ..repositories.config_cache import ConfigCache, config_cache
from ..repositories.config_repo import ConfigRepository, config_id_for
from ..repositories.user_repo import UserRepository
from ..utils.documents import dump_json_document, load_json_document, validate_model
from ..utils.idgen import generate_approval_rule_id
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)


def _as_grade(value: Union[str, int, None]) -> Optional[int]:
    """Applicant grades arrive as '41' from HR records; non-numeric grades match no range"""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _rule_changed(rule: ApprovalRule, stored: Optional[ApprovalRule]) -> bool:
    """False for a rule carried over as-is, including one arriving from an import"""
    if stored is None:
        return False
    timestamps = {"created_at", "updated_at"}
    return rule.model_dump(exclude=timestamps) != stored.model_dump(exclude=timestamps)


class ApprovalMatrixService:
    """Service for the approval matrix configuration and approver routing"""

    def __init__(
        self,
        config_repo: Optional[ConfigRepository] = None,
        user_repo: Optional[UserRepository] = None,
        audit_repo: Optional[AdminAuditRepository] = None,
        cache: Optional[ConfigCache] = None,
        resolver: Optional[ApprovalResolver] = None
    ):
        self.config_repo = config_repo or ConfigRepository()
        self.user_repo = user_repo or UserRepository()
        self.audit_repo = audit_repo or AdminAuditRepository()
        self.cache = cache if cache is not None else config_cache
        self.resolver = resolver or ApprovalResolver()

    @staticmethod
    def _config_id(module: Module) -> str:
        return config_id_for(ConfigKind.APPROVAL_MATRIX, module)

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_approval_matrix(self, module: Module = Module.LOANS) -> ApprovalMatrix:
        """Stored matrix, or the default matrix when none has been saved"""
        config_id = self._config_id(module)
        revision = self.config_repo.get_revision(config_id)
        cached = self.cache.get(config_id, revision)
        if cached is None:
            payload = self.config_repo.get(config_id)
            if payload is None:
                payload = default_approval_matrix()
                if Module(module) != Module.LOANS:
                    payload["rules"] = []
            cached = ApprovalMatrix.model_validate(payload)
            cached.rules = order_by_priority(cached.rules)
            self.cache.set(config_id, cached, revision)
        return cached.model_copy(deep=True)

    def _prepare(self, matrix: ApprovalMatrix, module: Module) -> ApprovalMatrix:
        """Check rule modules and fields; assign ids and sequences"""
        prepared: List[ApprovalRule] = []
        next_sequence = max([r.sequence for r in matrix.rules if r.sequence is not None], default=-1) + 1
        now = utc_now()
        stored = {rule.id: rule for rule in self.get_approval_matrix(module).rules}

        for index, rule in enumerate(matrix.rules):
            if rule.module != Module(module):
                raise RuleValidationError(
                    f"Rule '{rule.name}' belongs to module '{rule.module.value}', not '{Module(module).value}'",
                    field=f"rules.{index}.module"
                )
            for position, condition in enumerate(rule.conditions):
                if not is_valid_field(module, condition.field):
                    raise RuleValidationError(
                        f"'{condition.field}' is not a valid condition field for module '{Module(module).value}'",
                        field=f"rules.{index}.conditions.{position}.field"
                    )
            update: Dict[str, Any] = {}
            if rule.updated_at is None or _rule_changed(rule, stored.get(rule.id)):
                update["updated_at"] = now
            if rule.id is None:
                update["id"] = generate_approval_rule_id()
            if rule.sequence is None:
                update["sequence"] = next_sequence
                next_sequence += 1
            if rule.created_at is None:
                update["created_at"] = now
            prepared.append(rule.model_copy(update=update) if update else rule)

        ids = [rule.id for rule in prepared]
        if len(ids) != len(set(ids)):
            raise RuleValidationError("Rule ids must be unique within the matrix", field="rules")

        return ApprovalMatrix(version=matrix.version, updated_at=now, rules=prepared)

    def update_approval_matrix(
        self,
        matrix: ApprovalMatrix,
        actor: Optional[ActorContext] = None,
        module: Module = Module.LOANS,
        action: AdminAuditAction = AdminAuditAction.SAVE
    ) -> ApprovalMatrix:
        """Validate and replace the whole matrix"""
        prepared = self._prepare(matrix, module)
        self.config_repo.save(
            self._config_id(module),
            ConfigKind.APPROVAL_MATRIX,
            prepared.model_dump(mode="json"),
            module=module,
            actor_email=actor.email if actor else None
        )
        self.clear_cache(module)

        self.audit_repo.log_admin_action(
            action=action,
            config_kind=ConfigKind.APPROVAL_MATRIX,
            summary=f"Saved approval matrix with {len(prepared.rules)} rules",
            actor=actor,
            module=module,
            details={"rule_count": len(prepared.rules)}
        )
        return self.get_approval_matrix(module)

    def clear_cache(self, module: Module = Module.LOANS) -> None:
        self.cache.invalidate(self._config_id(module))

    def reset_to_default(
        self,
        actor: Optional[ActorContext] = None,
        module: Module = Module.LOANS
    ) -> ApprovalMatrix:
        self.config_repo.delete(self._config_id(module))
        self.clear_cache(module)
        self.audit_repo.log_admin_action(
            action=AdminAuditAction.RESET,
            config_kind=ConfigKind.APPROVAL_MATRIX,
            summary="Reset approval matrix to default",
            actor=actor,
            module=module
        )
        return self.get_approval_matrix(module)

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve(self, request: ApprovalRequest, module: Module = Module.LOANS) -> ApprovalChain:
        """Approval chain for a request under the current matrix"""
        return self.resolver.resolve(self.get_approval_matrix(module).rules, request)

    def test_approval_matrix(
        self,
        samples: Optional[List[Dict[str, Any]]] = None,
        actor: Optional[ActorContext] = None,
        module: Module = Module.LOANS
    ) -> List[Dict[str, Any]]:
        """
        Resolve sample requests against the matrix

        Each sample is {"name", "loan_data"}; the built-in samples are used
        when none are given.
        """
        samples = samples if samples is not None else SAMPLE_LOAN_REQUESTS
        rules = self.get_approval_matrix(module).rules

        results = []
        for sample in samples:
            request = validate_model(ApprovalRequest, sample.get("loan_data", {}))
            chain = self.resolver.resolve(rules, request)
            results.append({
                "name": sample.get("name"),
                "loan_data": sample.get("loan_data", {}),
                "chain": chain.model_dump(mode="json"),
            })

        self.audit_repo.log_admin_action(
            action=AdminAuditAction.TEST,
            config_kind=ConfigKind.APPROVAL_MATRIX,
            summary=f"Tested approval matrix with {len(results)} samples",
            actor=actor,
            module=module
        )
        return results

    # =========================================================================
    # Approver Routing
    # =========================================================================

    def required_grades(self, applicant_grade: Union[str, int, None], total_value: float) -> List[str]:
        """Approver grades of the first approval level, or the fallback grade"""
        chain = self.resolve(ApprovalRequest(
            total_value=total_value,
            applicant_grade=_as_grade(applicant_grade),
        ))
        for step in chain.steps:
            if step.approver_grades and not step.auto_approve:
                return list(step.approver_grades)
        return [FALLBACK_APPROVER_GRADE]

    def determine_approver(
        self,
        applicant_grade: Union[str, int, None],
        total_value: float
    ) -> ApproverAssignment:
        """
        Pick the approver for a loan application

        Order of preference: an approver holding one of the required grades
        (in the order listed), then a grade 54 approver, then any superuser.

        Raises:
            ApproverNotFoundError: no user can approve
        """
        grades = self.required_grades(applicant_grade, total_value)

        for grade in grades:
            users = self.user_repo.list_active_users(roles=APPROVER_ROLES, grades=[grade])
            if users:
                return self._assignment(users[0], grades)

        if FALLBACK_APPROVER_GRADE not in grades:
            users = self.user_repo.list_active_users(roles=APPROVER_ROLES, grades=[FALLBACK_APPROVER_GRADE])
            if users:
                logger.warning(
                    f"No grade {','.join(grades)} approver, falling back to grade {FALLBACK_APPROVER_GRADE}",
                    extra={"details": {"applicant_grade": applicant_grade, "total_value": total_value}}
                )
                return self._assignment(users[0], grades, fallback="grade")

        users = self.user_repo.list_active_users(roles=["superuser"])
        if users:
            logger.warning(
                "No approver with a matching grade, falling back to a superuser",
                extra={"details": {"applicant_grade": applicant_grade, "total_value": total_value}}
            )
            return self._assignment(users[0], grades, fallback="superuser")

        raise ApproverNotFoundError(
            "No approver found in the system",
            details={"applicant_grade": applicant_grade, "total_value": total_value}
        )

    @staticmethod
    def _assignment(user: ApproverUser, grades: List[str], fallback: Optional[str] = None) -> ApproverAssignment:
        return ApproverAssignment(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            grade=user.grade,
            required_grades=grades,
            fallback=fallback,
        )

    def can_user_approve(
        self,
        user: ApproverUser,
        applicant_grade: Union[str, int, None],
        total_value: float
    ) -> bool:
        """True when the user holds an approving role and a required grade"""
        if not user.is_active or user.role not in APPROVER_ROLES:
            return False
        return user.grade in self.required_grades(applicant_grade, total_value)

    # =========================================================================
    # Options
    # =========================================================================

    def get_available_roles(self) -> Dict[str, str]:
        return dict(AVAILABLE_ROLES)

    def get_available_grades(self) -> Dict[str, str]:
        return dict(AVAILABLE_GRADES)

    def get_asset_categories(self) -> Dict[str, str]:
        return dict(ASSET_CATEGORIES)

    # =========================================================================
    # Import / Export
    # =========================================================================

    def export_matrix(
        self,
        actor: Optional[ActorContext] = None,
        module: Module = Module.LOANS
    ) -> str:
        document = ApprovalMatrixDocument(
            module=module,
            matrix=self.get_approval_matrix(module),
            exported_at=utc_now(),
            exported_by=actor.email if actor else None,
        )
        self.audit_repo.log_admin_action(
            action=AdminAuditAction.EXPORT,
            config_kind=ConfigKind.APPROVAL_MATRIX,
            summary="Exported approval matrix",
            actor=actor,
            module=module
        )
        return dump_json_document(document.model_dump(mode="json"))

    def import_matrix(
        self,
        raw: Union[str, bytes],
        actor: Optional[ActorContext] = None,
        module: Module = Module.LOANS,
        max_bytes: Optional[int] = None
    ) -> ApprovalMatrix:
        """
        Replace the matrix with an exported document

        Raises:
            MalformedInputError: not valid JSON
            ValidationError: schema violation or document for another module
        """
        data = load_json_document(raw, max_bytes=max_bytes)
        if "matrix" not in data:
            raise ValidationError("Import data must contain matrix", field="matrix")
        document = validate_model(ApprovalMatrixDocument, data)

        if document.module != Module(module):
            raise ValidationError(
                f"Document holds the '{document.module.value}' matrix, expected '{Module(module).value}'",
                field="module"
            )

        matrix = self.update_approval_matrix(
            document.matrix, actor=actor, module=module, action=AdminAuditAction.IMPORT
        )
        logger.info(
            f"Imported approval matrix with {len(matrix.rules)} rules",
            extra={"app_module": Module(module).value, "actor_email": actor.email if actor else None}
        )
        return matrix
