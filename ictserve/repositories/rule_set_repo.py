"""Rule Set Repository - Workflow rules per module"""
from typing import Any, Dict, List, Optional, Sequence, Union

from .config_cache import ConfigCache, config_cache
from .config_repo import ConfigRepository, config_id_for
from ..domain.enums import ConfigKind, Module
from ..domain.errors import RuleNotFoundError, RuleValidationError, ValidationError
from ..domain.models import Rule, RuleSetDocument
from ..domain.vocabulary import is_valid_field
from ..engine.ordering import order_by_priority
from ..utils.documents import load_json_document, dump_json_document, validate_model
from ..utils.idgen import generate_rule_id
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)


def validate_rule_fields(rule: Rule) -> None:
    """
    Every condition must test a fact known to the rule's module

    Raises:
        RuleValidationError: naming the offending condition field
    """
    for index, condition in enumerate(rule.conditions):
        if not is_valid_field(rule.module, condition.field):
            raise RuleValidationError(
                f"'{condition.field}' is not a valid condition field for module '{rule.module.value}'",
                field=f"conditions.{index}.field",
                details={"rule_name": rule.name}
            )


class RuleSetRepository:
    """
    Store for workflow automation rules

    A module's rules are kept as one system_config document:
    {"module", "next_sequence", "rules": [...]}. Reads go through the shared
    ConfigCache; every write invalidates the module's entry.
    """

    def __init__(
        self,
        config_repo: Optional[ConfigRepository] = None,
        cache: Optional[ConfigCache] = None
    ):
        self.config_repo = config_repo or ConfigRepository()
        self.cache = cache if cache is not None else config_cache

    @staticmethod
    def _config_id(module: Module) -> str:
        return config_id_for(ConfigKind.WORKFLOW_RULES, module)

    # =========================================================================
    # Raw document access
    # =========================================================================

    def _load(self, module: Module) -> Dict[str, Any]:
        payload = self.config_repo.get(self._config_id(module))
        if payload is None:
            return {"module": Module(module).value, "next_sequence": 0, "rules": []}
        return payload

    def _write(
        self,
        module: Module,
        rules: Sequence[Rule],
        next_sequence: int,
        actor_email: Optional[str] = None
    ) -> None:
        payload = {
            "module": Module(module).value,
            "next_sequence": next_sequence,
            "rules": [rule.model_dump(mode="json") for rule in rules],
        }
        self.config_repo.save(
            self._config_id(module),
            ConfigKind.WORKFLOW_RULES,
            payload,
            module=module,
            actor_email=actor_email
        )
        self.clear_cache(module)

    def _stored_rules(self, module: Module) -> List[Rule]:
        return [Rule.model_validate(doc) for doc in self._load(module).get("rules", [])]

    # =========================================================================
    # Reads
    # =========================================================================

    def get_rules(self, module: Module) -> List[Rule]:
        """Rules of a module, highest priority first, ties in insertion order"""
        config_id = self._config_id(module)
        revision = self.config_repo.get_revision(config_id)
        cached = self.cache.get(config_id, revision)
        if cached is None:
            cached = order_by_priority(self._stored_rules(module))
            self.cache.set(config_id, cached, revision)
        return [rule.model_copy(deep=True) for rule in cached]

    def get_active_rules(self, module: Module) -> List[Rule]:
        return [rule for rule in self.get_rules(module) if rule.is_active]

    def get_rule(self, module: Module, rule_id: str) -> Rule:
        for rule in self.get_rules(module):
            if rule.id == rule_id:
                return rule
        raise RuleNotFoundError(
            f"Rule {rule_id} not found",
            details={"rule_id": rule_id, "module": Module(module).value}
        )

    # =========================================================================
    # Writes
    # =========================================================================

    def save(self, rule: Rule, actor_email: Optional[str] = None) -> Rule:
        """
        Create (no id) or update (existing id) a rule

        Raises:
            RuleValidationError: condition field not valid for the module
            RuleNotFoundError: the id does not exist any more
        """
        validate_rule_fields(rule)

        module = rule.module
        payload = self._load(module)
        rules = [Rule.model_validate(doc) for doc in payload.get("rules", [])]
        next_sequence = payload.get("next_sequence", len(rules))
        now = utc_now()

        if rule.id is None:
            saved = rule.model_copy(update={
                "id": generate_rule_id(),
                "sequence": next_sequence,
                "created_at": now,
                "updated_at": now,
            })
            rules.append(saved)
            next_sequence += 1
            logger.info(
                f"Created workflow rule '{saved.name}'",
                extra={"rule_id": saved.id, "app_module": module.value, "actor_email": actor_email}
            )
        else:
            index = next((i for i, existing in enumerate(rules) if existing.id == rule.id), None)
            if index is None:
                raise RuleNotFoundError(
                    f"Rule {rule.id} not found",
                    details={"rule_id": rule.id, "module": module.value}
                )
            existing = rules[index]
            saved = rule.model_copy(update={
                "sequence": existing.sequence,
                "created_at": existing.created_at,
                "updated_at": now,
            })
            rules[index] = saved
            logger.info(
                f"Updated workflow rule '{saved.name}'",
                extra={"rule_id": saved.id, "app_module": module.value, "actor_email": actor_email}
            )

        self._write(module, rules, next_sequence, actor_email)
        return saved

    def delete(self, module: Module, rule_id: str, actor_email: Optional[str] = None) -> None:
        payload = self._load(module)
        rules = [Rule.model_validate(doc) for doc in payload.get("rules", [])]
        remaining = [rule for rule in rules if rule.id != rule_id]
        if len(remaining) == len(rules):
            raise RuleNotFoundError(
                f"Rule {rule_id} not found",
                details={"rule_id": rule_id, "module": Module(module).value}
            )
        self._write(module, remaining, payload.get("next_sequence", len(rules)), actor_email)
        logger.info(
            f"Deleted workflow rule {rule_id}",
            extra={"rule_id": rule_id, "app_module": Module(module).value, "actor_email": actor_email}
        )

    def set_active(
        self,
        module: Module,
        rule_id: str,
        is_active: bool,
        actor_email: Optional[str] = None
    ) -> Rule:
        rule = next((r for r in self._stored_rules(module) if r.id == rule_id), None)
        if rule is None:
            raise RuleNotFoundError(
                f"Rule {rule_id} not found",
                details={"rule_id": rule_id, "module": Module(module).value}
            )
        rule.is_active = is_active
        return self.save(rule, actor_email)

    def replace_all(
        self,
        module: Module,
        rules: Sequence[Rule],
        actor_email: Optional[str] = None
    ) -> List[Rule]:
        """Replace the module's whole rule set in one write"""
        module = Module(module)
        now = utc_now()
        prepared: List[Rule] = []
        next_sequence = max([r.sequence for r in rules if r.sequence is not None], default=-1) + 1

        for rule in rules:
            if rule.module != module:
                raise RuleValidationError(
                    f"Rule '{rule.name}' belongs to module '{rule.module.value}', not '{module.value}'",
                    field="module"
                )
            validate_rule_fields(rule)
            update: Dict[str, Any] = {}
            if rule.id is None:
                update["id"] = generate_rule_id()
            if rule.sequence is None:
                update["sequence"] = next_sequence
                next_sequence += 1
            if rule.created_at is None:
                update["created_at"] = now
            if rule.updated_at is None:
                update["updated_at"] = now
            prepared.append(rule.model_copy(update=update) if update else rule)

        ids = [rule.id for rule in prepared]
        if len(ids) != len(set(ids)):
            raise RuleValidationError("Rule ids must be unique within a module", field="rules")

        self._write(module, prepared, next_sequence, actor_email)
        return self.get_rules(module)

    def reset_to_default(self, module: Module, actor_email: Optional[str] = None) -> List[Rule]:
        """Drop the stored rule set; the default set for workflow rules is empty"""
        self.config_repo.delete(self._config_id(module))
        self.clear_cache(module)
        logger.info(
            "Workflow rules reset to default",
            extra={"app_module": Module(module).value, "actor_email": actor_email}
        )
        return self.get_rules(module)

    def clear_cache(self, module: Module) -> None:
        self.cache.invalidate(self._config_id(module))

    # =========================================================================
    # Import / Export
    # =========================================================================

    def export_all(self, module: Module, exported_by: Optional[str] = None) -> str:
        """Pretty-printed JSON document with the module's full rule set"""
        document = RuleSetDocument(
            module=module,
            exported_at=utc_now(),
            exported_by=exported_by,
            rules=self.get_rules(module),
        )
        return dump_json_document(document.model_dump(mode="json"))

    def import_all(
        self,
        module: Module,
        raw: Union[str, bytes],
        actor_email: Optional[str] = None,
        max_bytes: Optional[int] = None
    ) -> List[Rule]:
        """
        Replace the module's rules with an exported document

        The file is parsed and validated completely before the store is
        touched.

        Raises:
            MalformedInputError: not valid JSON
            RuleValidationError: schema or vocabulary violation
            ValidationError: document belongs to another module
        """
        data = load_json_document(raw, max_bytes=max_bytes)
        document = validate_model(RuleSetDocument, data, RuleValidationError)

        if document.module != Module(module):
            raise ValidationError(
                f"Document holds '{document.module.value}' rules, expected '{Module(module).value}'",
                field="module"
            )

        rules = self.replace_all(module, document.rules, actor_email)
        logger.info(
            f"Imported {len(rules)} workflow rules",
            extra={"app_module": Module(module).value, "actor_email": actor_email}
        )
        return rules
