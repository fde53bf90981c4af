"""Denial intelligence: clusters, trend patterns and prevention rules."""
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.models.exceptions import ResourceNotFoundError
from claimshield.orchestrator.timeline import as_utc
from claimshield.scoring.trigger_pattern import parse_pattern
from claimshield.storage.claim_repository import ClaimRepository
from claimshield.storage.rule_repository import RuleRepository
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)

TREND_WEEKS = 7
PATTERN_WINDOW_DAYS = 30

# Root cause -> (prevention action, risk contribution, requires verification)
ROOT_CAUSE_PLAYBOOK: Dict[str, Tuple[str, int, bool]] = {
    "Missing Auth": ("Obtain prior authorization before submission", 40, False),
    "Eligibility Issues": ("Verify eligibility before submission", 35, True),
}
DEFAULT_PLAYBOOK: Tuple[str, int, bool] = ("Require documentation review before submission", 25, False)


def suggest_rule(payer: str, cpt_code: Optional[str], root_cause: str) -> Dict[str, Any]:
    """Prevention rule suggested for a denial cluster."""
    action, contribution, requires_verification = ROOT_CAUSE_PLAYBOOK.get(root_cause, DEFAULT_PLAYBOOK)
    pattern = f"payer={payer}"
    if cpt_code:
        pattern += f" AND cptCode={cpt_code}"
    return {
        "name": f"Prevent {root_cause} for {payer}",
        "description": f"Flag claims matching the {root_cause} denial pattern for CPT {cpt_code or 'any'}",
        "payer": payer,
        "cpt_code": cpt_code,
        "trigger_pattern": pattern,
        "prevention_action": action,
        "risk_contribution": contribution,
        "requires_verification": requires_verification,
    }


def _percent_change(recent: int, previous: int) -> int:
    if previous == 0:
        return 100 if recent else 0
    return round((recent - previous) * 100 / previous)


class IntelligenceService:
    """
    Service for denial intelligence and the prevention rules it feeds.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize intelligence service with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session
        self.claims = ClaimRepository(session)
        self.rules = RuleRepository(session)

    # ------------------------------------------------------------------
    # Denial intelligence
    # ------------------------------------------------------------------

    async def get_denial_clusters(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Group denials by (payer, CPT code, root cause).

        Args:
            now: Reference time for the weekly trend

        Returns:
            Clusters, largest first, each with a 7-week trend (oldest week
            first) and a suggested prevention rule
        """
        now = as_utc(now or datetime.now(timezone.utc))
        denials = await self.claims.get_denials()

        clusters: Dict[Tuple[str, Optional[str], str], Dict[str, Any]] = {}
        for denial in denials:
            key = (denial.payer, denial.cpt_code, denial.root_cause_tag)
            cluster = clusters.get(key)
            if cluster is None:
                cluster = clusters[key] = {
                    "payer": denial.payer,
                    "cpt_code": denial.cpt_code,
                    "root_cause": denial.root_cause_tag,
                    "count": 0,
                    "trend": [0] * TREND_WEEKS,
                    "suggested_rule": suggest_rule(denial.payer, denial.cpt_code, denial.root_cause_tag),
                }
            cluster["count"] += 1
            weeks_ago = (now - as_utc(denial.created_at)).days // 7
            if 0 <= weeks_ago < TREND_WEEKS:
                cluster["trend"][TREND_WEEKS - 1 - weeks_ago] += 1

        return sorted(
            clusters.values(),
            key=lambda c: (-c["count"], c["payer"], c["cpt_code"] or "", c["root_cause"]),
        )

    async def get_top_patterns(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Rank denial root causes and compare the last 30 days with the 30 before.

        Args:
            now: Reference time

        Returns:
            Patterns with root_cause, count, recent_count, previous_count and
            change (percent), most frequent first
        """
        now = as_utc(now or datetime.now(timezone.utc))
        recent_start = now - timedelta(days=PATTERN_WINDOW_DAYS)
        previous_start = recent_start - timedelta(days=PATTERN_WINDOW_DAYS)

        counts: Dict[str, Dict[str, int]] = defaultdict(lambda: {"count": 0, "recent": 0, "previous": 0})
        for denial in await self.claims.get_denials():
            created = as_utc(denial.created_at)
            bucket = counts[denial.root_cause_tag]
            bucket["count"] += 1
            if created >= recent_start:
                bucket["recent"] += 1
            elif created >= previous_start:
                bucket["previous"] += 1

        patterns = [
            {
                "root_cause": root_cause,
                "count": c["count"],
                "recent_count": c["recent"],
                "previous_count": c["previous"],
                "change": _percent_change(c["recent"], c["previous"]),
            }
            for root_cause, c in counts.items()
        ]
        return sorted(patterns, key=lambda p: (-p["count"], p["root_cause"]))

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    async def list_rules(self) -> List[Dict[str, Any]]:
        return [rule.to_dict() for rule in await self.rules.get_all()]

    async def create_rule(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a prevention rule.

        Args:
            data: Rule fields

        Returns:
            Created rule data

        Raises:
            RulePatternError: If the trigger pattern does not parse
        """
        parse_pattern(data.get("trigger_pattern"))
        rule = await self.rules.create(data)
        return rule.to_dict()

    async def generate_rule(
        self,
        payer: str,
        cpt_code: Optional[str],
        root_cause: str,
        suggested_rule: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create a rule from a denial cluster, starting from its suggestion.

        Args:
            payer: Cluster payer
            cpt_code: Cluster CPT code
            root_cause: Cluster root cause
            suggested_rule: Caller edits applied over the generated suggestion

        Returns:
            Created rule data
        """
        data = suggest_rule(payer, cpt_code, root_cause)
        for key, value in (suggested_rule or {}).items():
            if value is not None:
                data[key] = value
        data["enabled"] = True
        logger.info("Generating rule from denial cluster", payer=payer, cpt_code=cpt_code, root_cause=root_cause)
        return await self.create_rule(data)

    async def update_rule(self, rule_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        rule = await self.rules.get_by_id(rule_id)
        if not rule:
            raise ResourceNotFoundError("Rule", rule_id)
        if "trigger_pattern" in updates:
            parse_pattern(updates["trigger_pattern"])
        await self.rules.update(rule, updates)
        return rule.to_dict()

    async def delete_rule(self, rule_id: str) -> None:
        rule = await self.rules.get_by_id(rule_id)
        if not rule:
            raise ResourceNotFoundError("Rule", rule_id)
        await self.rules.delete(rule)
