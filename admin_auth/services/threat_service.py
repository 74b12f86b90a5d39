"""
Threat analyzer: heuristic scoring of a single login.

`ThreatAnalyzer.analyze` runs after the new session is opened and before
the successful login is appended to the history, so:
- active sessions already include the new one (multi-location check)
- the history holds only *prior* attempts (new-device, travel checks)

It never blocks a login.  It returns descriptive findings and whether
the owner wants an alert email about them.

`monitor_account_security` is the fleet-wide coordinated-attack scan,
invoked from the scheduled jobs script.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.models.admin import AdminAccount
from admin_auth.models.base import utcnow
from admin_auth.models.device_info import DeviceInfo, is_known_location
from admin_auth.services.account_service import AccountFilter, find_accounts

logger = logging.getLogger(__name__)

BRUTE_FORCE_SCAN = 20
BRUTE_FORCE_WINDOW = timedelta(hours=1)
BRUTE_FORCE_THRESHOLD = 3

MULTI_LOCATION_THRESHOLD = 3

NEW_DEVICE_SCAN = 10
NEW_DEVICE_MIN_SIGNATURES = 3

TRAVEL_SCAN = 5
TRAVEL_LOOKBACK = timedelta(hours=24)
TRAVEL_MIN_INTERVAL = timedelta(minutes=60)

COORDINATED_ATTACK_THRESHOLD = 3


class FindingKind:
    HIGH_RISK_IP = "high_risk_ip"
    BRUTE_FORCE = "brute_force"
    MULTI_LOCATION = "multi_location"
    NEW_DEVICE = "new_device"
    IMPOSSIBLE_TRAVEL = "impossible_travel"


_ERROR_KINDS = {FindingKind.HIGH_RISK_IP, FindingKind.BRUTE_FORCE, FindingKind.IMPOSSIBLE_TRAVEL}


@dataclass(frozen=True)
class ThreatFinding:
    kind: str
    message: str

    @property
    def severity(self) -> int:
        return logging.ERROR if self.kind in _ERROR_KINDS else logging.WARNING


@dataclass
class ThreatAssessment:
    findings: list[ThreatFinding] = field(default_factory=list)
    alert: bool = False

    @property
    def messages(self) -> list[str]:
        return [f.message for f in self.findings]

    @property
    def has_threats(self) -> bool:
        return bool(self.findings)


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


class ThreatAnalyzer:
    """Stateless; one instance is shared by every request."""

    def __init__(self, is_high_risk_ip: Callable[[str], bool] | None = None):
        self._is_high_risk_ip = is_high_risk_ip or (lambda ip: False)

    def analyze(
        self,
        account: AdminAccount,
        device: DeviceInfo,
        now: datetime | None = None,
    ) -> ThreatAssessment:
        now = now or utcnow()
        findings: list[ThreatFinding] = []
        for check in (
            self._check_high_risk_ip,
            self._check_brute_force,
            self._check_multi_location,
            self._check_new_device,
            self._check_impossible_travel,
        ):
            finding = check(account, device, now)
            if finding is not None:
                findings.append(finding)

        for finding in findings:
            logger.log(finding.severity, "Threat for %s from %s: %s", account.email, device.ip, finding.message)

        return ThreatAssessment(
            findings=findings,
            alert=bool(findings) and bool(account.notify_suspicious_activity),
        )

    def _check_high_risk_ip(self, account, device, now):
        if device.ip and self._is_high_risk_ip(device.ip):
            return ThreatFinding(
                FindingKind.HIGH_RISK_IP,
                f"Login from high-risk location: {device.location} ({device.ip})",
            )
        return None

    def _check_brute_force(self, account, device, now):
        since = now - BRUTE_FORCE_WINDOW
        failures = [
            r
            for r in account.login_history[-BRUTE_FORCE_SCAN:]
            if not r.success and r.ip == device.ip and r.login_time >= since
        ]
        if len(failures) >= BRUTE_FORCE_THRESHOLD:
            return ThreatFinding(
                FindingKind.BRUTE_FORCE,
                f"Multiple recent failed attempts from same IP ({len(failures)} in the last hour)",
            )
        return None

    def _check_multi_location(self, account, device, now):
        locations = {
            s.location.strip()
            for s in account.sessions
            if s.is_active and is_known_location(s.location)
        }
        if len(locations) >= MULTI_LOCATION_THRESHOLD:
            return ThreatFinding(
                FindingKind.MULTI_LOCATION,
                f"Concurrent sessions from multiple locations: {', '.join(sorted(locations))}",
            )
        return None

    def _check_new_device(self, account, device, now):
        signatures = {r.signature for r in account.recent_logins(NEW_DEVICE_SCAN, success=True)}
        if len(signatures) >= NEW_DEVICE_MIN_SIGNATURES and device.signature not in signatures:
            return ThreatFinding(
                FindingKind.NEW_DEVICE,
                f"Login from new device: {device.browser} on {device.os}",
            )
        return None

    def _check_impossible_travel(self, account, device, now):
        if not device.has_known_location:
            return None
        since = now - TRAVEL_LOOKBACK
        candidates = [
            r
            for r in account.login_history
            if r.success and is_known_location(r.location) and r.login_time >= since
        ][-TRAVEL_SCAN:]
        if not candidates:
            return None
        previous = candidates[-1]
        elapsed = now - previous.login_time
        if previous.location != device.location and elapsed < TRAVEL_MIN_INTERVAL:
            return ThreatFinding(
                FindingKind.IMPOSSIBLE_TRAVEL,
                f"Rapid location change: {previous.location} to {device.location} "
                f"within {_minutes(elapsed)} minutes (impossible travel)",
            )
        return None


# ── Fleet-wide monitoring ────────────────────────────────────────────


@dataclass
class AttackReport:
    locked_accounts: int = 0
    suspicious_ips: dict[str, list[str]] = field(default_factory=dict)


async def monitor_account_security(
    db: AsyncSession,
    *,
    window_minutes: int = 60,
    now: datetime | None = None,
) -> AttackReport:
    """
    Group the recent failed attempts of every locked account by source
    IP; an IP that hit several accounts is a probable coordinated attack.
    Observability only: nothing is blocked.
    """
    now = now or utcnow()
    since = now - timedelta(minutes=window_minutes)
    locked = await find_accounts(db, AccountFilter(locked_at=now, is_deleted=None))

    report = AttackReport(locked_accounts=len(locked))
    if not locked:
        return report
    logger.warning("Security monitor: %d accounts currently locked", len(locked))

    targets: dict[str, set[str]] = defaultdict(set)
    for account in locked:
        for record in account.login_history:
            if not record.success and record.ip and record.login_time >= since:
                targets[record.ip].add(account.email)

    for ip, emails in targets.items():
        if len(emails) >= COORDINATED_ATTACK_THRESHOLD:
            report.suspicious_ips[ip] = sorted(emails)
            logger.critical(
                "Potential coordinated attack from IP %s targeting %d accounts", ip, len(emails)
            )
    return report
