"""Repository for denial-prevention rules."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.storage.models import RuleModel
from claimshield.models.risk import RuleSnapshot
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

EDITABLE_FIELDS = (
    "name",
    "description",
    "payer",
    "cpt_code",
    "trigger_pattern",
    "prevention_action",
    "risk_contribution",
    "requires_verification",
    "enabled",
)


def to_rule_snapshot(rule: RuleModel) -> RuleSnapshot:
    return RuleSnapshot(
        rule_id=rule.id,
        name=rule.name,
        description=rule.description or "",
        payer=rule.payer,
        cpt_code=rule.cpt_code,
        trigger_pattern=rule.trigger_pattern or "",
        prevention_action=rule.prevention_action or "",
        risk_contribution=rule.risk_contribution,
        requires_verification=bool(rule.requires_verification),
        enabled=bool(rule.enabled),
    )


class RuleRepository:
    """Repository for rule database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, data: Dict[str, Any]) -> RuleModel:
        """
        Create a rule.

        Args:
            data: Editable rule fields

        Returns:
            Created rule model
        """
        rule = RuleModel(
            id=str(uuid4()),
            triggered_count=0,
            prevented_count=0,
            protected_amount=0.0,
        )
        for key in EDITABLE_FIELDS:
            if key in data and data[key] is not None:
                setattr(rule, key, data[key])
        if rule.enabled is None:
            rule.enabled = True

        self.session.add(rule)
        await self.session.flush()

        logger.info("Rule created", rule_id=rule.id, name=rule.name)
        return rule

    async def get_by_id(self, rule_id: str) -> Optional[RuleModel]:
        result = await self.session.execute(
            select(RuleModel).where(RuleModel.id == rule_id)
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, rule_ids: List[str]) -> List[RuleModel]:
        if not rule_ids:
            return []
        result = await self.session.execute(
            select(RuleModel).where(RuleModel.id.in_(rule_ids))
        )
        return list(result.scalars().all())

    async def get_all(self, enabled_only: bool = False) -> List[RuleModel]:
        query = select(RuleModel)
        if enabled_only:
            query = query.where(RuleModel.enabled.is_(True))
        result = await self.session.execute(query.order_by(RuleModel.name, RuleModel.id))
        return list(result.scalars().all())

    async def get_active_snapshots(self) -> List[RuleSnapshot]:
        """Enabled rules in the form the risk scorer reads."""
        return [to_rule_snapshot(rule) for rule in await self.get_all(enabled_only=True)]

    async def update(self, rule: RuleModel, updates: Dict[str, Any]) -> RuleModel:
        """
        Apply editable-field updates to a rule. Counters are not editable.

        Args:
            rule: Rule to update
            updates: Field values

        Returns:
            Updated rule model
        """
        for key, value in updates.items():
            if key in EDITABLE_FIELDS:
                setattr(rule, key, value)
        rule.updated_at = datetime.now(timezone.utc)
        await self.session.flush()

        logger.info("Rule updated", rule_id=rule.id, fields=sorted(k for k in updates if k in EDITABLE_FIELDS))
        return rule

    async def delete(self, rule: RuleModel) -> None:
        await self.session.delete(rule)
        await self.session.flush()
        logger.info("Rule deleted", rule_id=rule.id)

    async def totals(self) -> Dict[str, float]:
        """Sum of prevented counts and protected amounts across all rules."""
        result = await self.session.execute(
            select(
                func.coalesce(func.sum(RuleModel.prevented_count), 0),
                func.coalesce(func.sum(RuleModel.protected_amount), 0.0),
            )
        )
        prevented, protected = result.one()
        return {"prevented_count": int(prevented), "protected_amount": float(protected)}
