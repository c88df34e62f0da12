"""RetentionSweep - best-effort, per-policy cleanup of aged records."""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional
from models.database import utcnow
from models.errors import ConfigurationError, RetentionDeleteError

logger = logging.getLogger("tradecycle.orchestrator.retention")


@dataclass(frozen=True)
class RetentionPolicy:
    """Delete ``record_class`` rows older than ``max_age``, or already expired when ``max_age`` is None."""
    name: str
    record_class: str
    max_age: Optional[timedelta] = None

    @property
    def is_expiry(self):
        return self.max_age is None


@dataclass
class RetentionReport:
    deleted: dict = field(default_factory=dict)
    errors: dict = field(default_factory=dict)

    @property
    def total(self):
        return sum(self.deleted.values())

    @property
    def ok(self):
        return not self.errors


def default_policies(read_notifications_days=7, logs_days=30, critical_logs_days=90):
    return [
        RetentionPolicy("expired_cache", "market_data_cache"),
        RetentionPolicy("read_notifications", "read_notifications", timedelta(days=read_notifications_days)),
        RetentionPolicy("logs", "logs", timedelta(days=logs_days)),
        RetentionPolicy("critical_logs", "critical_logs", timedelta(days=critical_logs_days)),
    ]


def policies_from_config(config):
    r = config.get("retention", {})
    return default_policies(
        read_notifications_days=r.get("read_notifications_days", 7),
        logs_days=r.get("logs_days", 30),
        critical_logs_days=r.get("critical_logs_days", 90),
    )


class RetentionSweep:
    def __init__(self, store, policies=None, clock=utcnow):
        self.store = store
        self.policies = list(policies if policies is not None else default_policies())
        self._clock = clock
        self._check_log_retention()

    def _check_log_retention(self):
        ages = {p.record_class: p.max_age for p in self.policies if not p.is_expiry}
        logs, critical = ages.get("logs"), ages.get("critical_logs")
        if logs is not None and critical is not None and critical < logs:
            raise ConfigurationError(
                f"critical log retention ({critical.days}d) must be >= log retention ({logs.days}d)"
            )

    def run(self):
        """Apply every policy independently. Never raises for a failed delete."""
        report = RetentionReport()
        now = self._clock()
        for policy in self.policies:
            try:
                report.deleted[policy.name] = self._apply(policy, now)
            except RetentionDeleteError as e:
                logger.error(str(e))
                report.errors[policy.name] = str(e.original)

        logger.info(
            f"Retention sweep: {report.total} records deleted"
            + (f", {len(report.errors)} policies failed" if report.errors else "")
        )
        return report

    def _apply(self, policy, now):
        try:
            if policy.is_expiry:
                count = self.store.delete_expired(policy.record_class, now=now)
            else:
                count = self.store.delete_older_than(policy.record_class, policy.max_age, now=now)
        except Exception as e:
            raise RetentionDeleteError(policy.name, e) from e
        if count:
            logger.debug(f"{policy.name}: deleted {count} records")
        return count
