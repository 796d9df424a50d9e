"""Email health statistics model.

Defines the health snapshot reported by the API and the maintenance worker.

Version: 1.0.0
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthLevel(str, Enum):
    """Overall delivery health."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


# Assessment thresholds
CRITICAL_STUCK_PENDING = 5
CRITICAL_QUEUE_PENDING = 10
MIN_SUCCESS_RATE = 95.0


class EmailHealthReport(BaseModel):
    """Delivery health snapshot.

    Attributes:
        stuck_pending_count: Log rows pending longer than the stuck age.
        queue_pending_count: Queue rows waiting for a sweep.
        queue_failed_count: Queue rows that hit the attempt ceiling.
        sent_last_24h: Log rows sent in the last 24 hours.
        failed_last_24h: Log rows failed in the last 24 hours.
        success_rate: Sent share of sent plus failed, in percent.
        status: Overall assessment.
        recommendations: Operator hints derived from the counters.
        generated_at: Snapshot time.
    """

    stuck_pending_count: int = Field(default=0, ge=0)
    queue_pending_count: int = Field(default=0, ge=0)
    queue_failed_count: int = Field(default=0, ge=0)
    sent_last_24h: int = Field(default=0, ge=0)
    failed_last_24h: int = Field(default=0, ge=0)
    success_rate: float = Field(default=100.0, ge=0.0, le=100.0)
    status: HealthLevel = HealthLevel.HEALTHY
    recommendations: list[str] = Field(default_factory=list)
    generated_at: datetime

    def calculate_success_rate(self) -> None:
        """Recompute success rate; 100% when nothing was processed."""
        total = self.sent_last_24h + self.failed_last_24h
        if total > 0:
            self.success_rate = round(self.sent_last_24h / total * 100, 2)
        else:
            self.success_rate = 100.0

    def assess(self) -> None:
        """Derive ``status`` and ``recommendations`` from the counters."""
        self.calculate_success_rate()
        recommendations: list[str] = []

        if self.stuck_pending_count > 0:
            recommendations.append(
                f"{self.stuck_pending_count} emails stuck in pending, run the stuck email sweep"
            )
        if self.queue_pending_count > 0:
            recommendations.append(f"{self.queue_pending_count} emails waiting in the retry queue")
        if self.queue_failed_count > 0:
            recommendations.append(
                f"{self.queue_failed_count} queued emails exhausted retries and need manual review"
            )
        if self.success_rate < MIN_SUCCESS_RATE:
            recommendations.append(
                f"Success rate {self.success_rate}% is below {MIN_SUCCESS_RATE}%, check provider settings"
            )

        if (
            self.stuck_pending_count > CRITICAL_STUCK_PENDING
            or self.queue_pending_count > CRITICAL_QUEUE_PENDING
        ):
            self.status = HealthLevel.CRITICAL
        elif self.stuck_pending_count > 0 or self.success_rate < MIN_SUCCESS_RATE:
            self.status = HealthLevel.WARNING
        else:
            self.status = HealthLevel.HEALTHY

        if not recommendations:
            recommendations.append("Email system is operating normally")
        self.recommendations = recommendations
