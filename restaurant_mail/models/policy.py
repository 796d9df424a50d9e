"""Retry policy model.

One object holds every ceiling and delay of the delivery pipeline so the
immediate loop and the reconciliation sweeps cannot drift apart.

Version: 1.0.0
"""

from pydantic import BaseModel, ConfigDict, Field


class RetryPolicy(BaseModel):
    """Retry, timeout and batch settings for the delivery pipeline.

    Attributes:
        max_immediate_attempts: Attempts made inside one send call.
        base_delay: Seconds before the second immediate attempt; doubles after.
        send_timeout: Seconds one provider call may take.
        queue_max_attempts: Ceiling on ``current_attempts`` in the queue sweep.
        queue_retry_delay: Seconds a failed queue row waits before the next pass.
        queue_batch_size: Queue rows handled per sweep.
        pending_batch_size: Stuck log rows handled per sweep.
        stuck_pending_age: Seconds after which a pending log row counts as stuck.
        fail_fast_on_permanent: Stop the immediate loop on non-retryable errors.
    """

    model_config = ConfigDict(frozen=True)

    max_immediate_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    send_timeout: float = Field(default=30.0, gt=0)
    queue_max_attempts: int = Field(default=5, ge=1)
    queue_retry_delay: int = Field(default=300, ge=0)
    queue_batch_size: int = Field(default=20, ge=1)
    pending_batch_size: int = Field(default=10, ge=1)
    stuck_pending_age: int = Field(default=120, ge=0)
    fail_fast_on_permanent: bool = True

    def backoff_delay(self, attempt: int) -> float:
        """Delay to wait after a failed immediate attempt.

        Args:
            attempt: 1-based number of the attempt that just failed.

        Returns:
            ``base_delay * 2 ** (attempt - 1)``, or 0 after the last attempt.
        """
        if attempt >= self.max_immediate_attempts:
            return 0.0
        return self.base_delay * (2 ** (attempt - 1))
