"""Action Dispatcher - Executes the actions of a fired rule"""
from typing import Any, Callable, Dict, List, Optional, Sequence

from pymongo.errors import PyMongoError

from ..domain.enums import ActionType, InAppNotificationCategory, NotificationTemplateKey
from ..domain.errors import ActionExecutionError, DomainError
from ..domain.models import Action, ActionOutcome, DispatchResult, NotificationOutbox, TargetEntity
from ..repositories.entity_repo import EntityRepository
from ..repositories.inapp_notification_repo import InAppNotificationRepository
from ..repositories.notification_repo import NotificationRepository
from ..utils.idgen import generate_notification_id
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

Handler = Callable[[Action, TargetEntity], str]


def _split_recipients(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        items = [str(v) for v in value]
    else:
        items = str(value).split(",")
    return [item.strip() for item in items if item.strip()]


class ActionDispatcher:
    """
    Execute rule actions against a target entity

    Actions run in order. A failing action is recorded as a failed outcome
    and the remaining actions still run, so a rule can partially succeed.
    Callers that need all-or-nothing semantics call
    DispatchResult.raise_for_failure().
    """

    def __init__(
        self,
        entity_repo: Optional[EntityRepository] = None,
        notification_repo: Optional[NotificationRepository] = None,
        inapp_repo: Optional[InAppNotificationRepository] = None
    ):
        self.entity_repo = entity_repo or EntityRepository()
        self.notification_repo = notification_repo or NotificationRepository()
        self.inapp_repo = inapp_repo or InAppNotificationRepository()

        self.handlers: Dict[ActionType, Handler] = {
            ActionType.SEND_EMAIL: self._send_email,
            ActionType.UPDATE_STATUS: self._update_status,
            ActionType.ASSIGN_USER: self._assign_user,
            ActionType.CREATE_NOTIFICATION: self._create_notification,
        }

    def dispatch(
        self,
        actions: Sequence[Action],
        target: TargetEntity,
        dry_run: bool = False
    ) -> DispatchResult:
        """
        Run actions in order

        Args:
            actions: Actions of the fired rule
            target: Entity the actions apply to; its facts are updated as
                status and assignment change
            dry_run: Report what would happen without side effects

        Returns:
            DispatchResult with one outcome per action
        """
        result = DispatchResult()

        for action in actions:
            if dry_run:
                result.outcomes.append(ActionOutcome(
                    action_type=action.type,
                    success=True,
                    detail=f"Would execute {action.type.value}",
                    dry_run=True,
                ))
                continue

            handler = self.handlers.get(action.type)
            if handler is None:
                result.outcomes.append(ActionOutcome(
                    action_type=action.type,
                    success=False,
                    error=f"No handler registered for action '{action.type.value}'",
                ))
                continue

            try:
                detail = handler(action, target)
                result.outcomes.append(ActionOutcome(
                    action_type=action.type,
                    success=True,
                    detail=detail,
                ))
            except (DomainError, PyMongoError, ValueError) as e:
                message = e.message if isinstance(e, DomainError) else str(e)
                logger.warning(
                    f"Action {action.type.value} failed: {message}",
                    extra={
                        "app_module": target.module.value,
                        "entity_id": target.entity_id,
                        "action": action.type.value,
                        "status": "failed",
                    }
                )
                result.outcomes.append(ActionOutcome(
                    action_type=action.type,
                    success=False,
                    error=message,
                ))

        if result.partial_failure:
            logger.warning(
                f"{len(result.failed)} of {len(result.outcomes)} actions failed",
                extra={"app_module": target.module.value, "entity_id": target.entity_id}
            )
        return result

    # =========================================================================
    # Handlers
    # =========================================================================

    @staticmethod
    def _require_entity(action: Action, target: TargetEntity) -> str:
        if not target.entity_id:
            raise ActionExecutionError(
                f"Action {action.type.value} needs a target entity id",
                details={"action": action.type.value}
            )
        return target.entity_id

    def _send_email(self, action: Action, target: TargetEntity) -> str:
        recipients = _split_recipients(action.params.get("recipient") or action.value)
        if not recipients:
            raise ActionExecutionError("send_email needs at least one recipient")

        notification = NotificationOutbox(
            notification_id=generate_notification_id(),
            template_key=NotificationTemplateKey.WORKFLOW_RULE_EMAIL,
            recipients=recipients,
            subject=action.params.get("subject"),
            body=action.params.get("body"),
            payload={
                "template": action.params.get("template"),
                "facts": target.facts,
            },
            module=target.module,
            entity_id=target.entity_id,
            created_at=utc_now(),
        )
        self.notification_repo.create_notification(notification)
        return f"Email queued for {', '.join(recipients)}"

    def _update_status(self, action: Action, target: TargetEntity) -> str:
        new_status = action.params.get("new_status") or action.value
        if not new_status:
            raise ActionExecutionError("update_status needs a status value")
        entity_id = self._require_entity(action, target)

        self.entity_repo.update_fields(target.module, entity_id, {"status": new_status})
        target.facts["status"] = new_status
        return f"Status set to {new_status}"

    def _assign_user(self, action: Action, target: TargetEntity) -> str:
        user_id = action.params.get("user_id") or action.value
        if not user_id:
            raise ActionExecutionError("assign_user needs a user id")
        entity_id = self._require_entity(action, target)

        self.entity_repo.update_fields(target.module, entity_id, {"assigned_to": user_id})
        target.facts["assigned_to"] = user_id
        return f"Assigned to {user_id}"

    def _create_notification(self, action: Action, target: TargetEntity) -> str:
        message = action.params.get("message") or action.value
        if not message:
            raise ActionExecutionError("create_notification needs a message")

        recipients = _split_recipients(action.params.get("recipients"))
        if not recipients and target.facts.get("assigned_to"):
            recipients = [str(target.facts["assigned_to"])]
        if not recipients:
            raise ActionExecutionError("create_notification has no recipient")

        title = action.params.get("title") or f"{target.module.value.capitalize()} workflow"
        for recipient in recipients:
            self.inapp_repo.create_notification(
                recipient=recipient,
                category=InAppNotificationCategory.WORKFLOW,
                title=title,
                message=message,
                module=target.module,
                entity_id=target.entity_id,
            )
        return f"Notified {len(recipients)} recipient(s)"
