"""
Scheduled security maintenance.

Usage (e.g. from cron every 15 minutes):
    python -m admin_auth.scripts.security_jobs            # both jobs
    python -m admin_auth.scripts.security_jobs sweep      # sessions only
    python -m admin_auth.scripts.security_jobs monitor    # attack scan only

- sweep:   deactivate expired/idle sessions on every account
- monitor: look for one IP behind failed logins on several locked
           accounts (logged at CRITICAL)

Both are safe to run alongside live traffic.
"""

import asyncio
import logging
import sys

from admin_auth.core.config import settings
from admin_auth.core.database import async_session_factory, engine
from admin_auth.services.session_service import cleanup_inactive_sessions
from admin_auth.services.threat_service import monitor_account_security

logger = logging.getLogger("admin_auth.jobs")

JOBS = ("sweep", "monitor")


async def run_jobs(jobs: list[str]) -> None:
    try:
        if "sweep" in jobs:
            async with async_session_factory() as session:
                await cleanup_inactive_sessions(session)
                await session.commit()

        if "monitor" in jobs:
            async with async_session_factory() as session:
                report = await monitor_account_security(
                    session, window_minutes=settings.ATTACK_SCAN_WINDOW_MINUTES
                )
                logger.info(
                    "Security monitor: %d locked accounts, %d suspicious IPs",
                    report.locked_accounts,
                    len(report.suspicious_ips),
                )
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    args = list(sys.argv[1:] if argv is None else argv)
    unknown = [a for a in args if a not in JOBS]
    if unknown:
        print(f"Unknown job(s): {', '.join(unknown)}. Choose from: {', '.join(JOBS)}")
        return 2
    asyncio.run(run_jobs(args or list(JOBS)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
