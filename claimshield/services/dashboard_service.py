"""Dashboard aggregation: headline metrics and alerts."""
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from claimshield.models.claim import TimelineEvent
from claimshield.models.enums import AlertSeverity, ClaimStatus, ReadinessStatus
from claimshield.orchestrator.timeline import detect_stuck, as_utc
from claimshield.storage.claim_repository import ClaimRepository
from claimshield.storage.rule_repository import RuleRepository
from claimshield.storage.claim_event_log import ClaimEventLog
from claimshield.config.settings import get_settings
from claimshield.config.logging_config import get_logger

logger = get_logger(__name__)


def ar_days(events: List[TimelineEvent]) -> Optional[int]:
    """Whole days from the first submitted event to the paid event, or None if not paid."""
    submitted = next((e for e in events if e.event_type == ClaimStatus.SUBMITTED), None)
    paid = next((e for e in events if e.event_type == ClaimStatus.PAID), None)
    if not submitted or not paid:
        return None
    return max(0, (as_utc(paid.timestamp) - as_utc(submitted.timestamp)).days)


class DashboardService:
    """Read-only aggregation over claims, events and rules."""

    def __init__(self, session: AsyncSession, stuck_threshold_days: Optional[int] = None):
        self.session = session
        self.claims = ClaimRepository(session)
        self.rules = RuleRepository(session)
        self.event_log = ClaimEventLog(session)
        self.stuck_threshold_days = stuck_threshold_days or get_settings().stuck_claim_threshold_days

    async def get_metrics(self) -> Dict[str, Any]:
        """
        Compute the dashboard headline metrics.

        Returns:
            denials_prevented, claims_at_risk, avg_ar_days, top_payer_risk,
            revenue_protected, total_claims, pending_claims
        """
        claims = await self.claims.list_all()
        totals = await self.rules.totals()

        at_risk = [
            c for c in claims
            if c.readiness_status in (ReadinessStatus.YELLOW.value, ReadinessStatus.RED.value)
        ]

        payer_risk = Counter(
            c.payer or "Unknown"
            for c in claims
            if c.readiness_status and c.readiness_status != ReadinessStatus.GREEN.value
        )
        top_payer_risk = "N/A"
        if payer_risk:
            # Ties broken by payer name so the result is stable
            top_payer_risk = sorted(payer_risk.items(), key=lambda item: (-item[1], item[0]))[0][0]

        paid_ids = [c.id for c in claims if c.status == ClaimStatus.PAID.value]
        events_by_claim = await self.event_log.get_events_for_claims(paid_ids)
        durations = [d for d in (ar_days(events_by_claim[cid]) for cid in paid_ids) if d is not None]
        avg_ar_days = round(sum(durations) / len(durations), 1) if durations else 0

        metrics = {
            "denials_prevented": totals["prevented_count"],
            "claims_at_risk": len(at_risk),
            "avg_ar_days": avg_ar_days,
            "top_payer_risk": top_payer_risk,
            "revenue_protected": round(totals["protected_amount"], 2),
            "total_claims": len(claims),
            "pending_claims": sum(1 for c in claims if c.status == ClaimStatus.PENDING.value),
        }
        logger.debug("Dashboard metrics computed", **metrics)
        return metrics

    async def get_alerts(self, limit: int = 5, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Build dashboard alerts for RED claims and claims stuck in pending.

        Args:
            limit: Maximum alerts returned
            now: Reference time for stuck detection

        Returns:
            Alerts, newest first
        """
        now = now or datetime.now(timezone.utc)
        claims = await self.claims.list_all()
        alerts: List[Dict[str, Any]] = []

        for claim in claims:
            if claim.readiness_status == ReadinessStatus.RED.value:
                alerts.append({
                    "alert_id": f"risk-{claim.id}",
                    "type": "risk",
                    "title": "High-Risk Claim Blocked",
                    "description": (
                        f"Claim {claim.id[:8]} for {claim.payer}: "
                        f"{claim.reason or 'risk score ' + str(claim.risk_score)}"
                    ),
                    "claim_id": claim.id,
                    "severity": AlertSeverity.HIGH.value,
                    "timestamp": as_utc(claim.scored_at or claim.created_at),
                })

        pending_ids = [c.id for c in claims if c.status == ClaimStatus.PENDING.value]
        events_by_claim = await self.event_log.get_events_for_claims(pending_ids)
        for claim_id in pending_ids:
            stuck = detect_stuck(events_by_claim[claim_id], now=now, threshold_days=self.stuck_threshold_days)
            if stuck.is_stuck:
                alerts.append({
                    "alert_id": f"stuck-{claim_id}",
                    "type": "stuck",
                    "title": "Claim Stuck in Pending",
                    "description": f"Claim {claim_id[:8]} has been pending for {stuck.days} days",
                    "claim_id": claim_id,
                    "severity": AlertSeverity.MEDIUM.value,
                    "timestamp": as_utc(stuck.last_event_at),
                })

        alerts.sort(key=lambda a: a["timestamp"], reverse=True)
        for alert in alerts:
            alert["timestamp"] = alert["timestamp"].isoformat()
        return alerts[:limit]
