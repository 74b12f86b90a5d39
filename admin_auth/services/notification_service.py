"""
Notification dispatcher: background delivery of outbound email.

Request handlers never await delivery.  They `submit` a named job (a
zero-argument coroutine factory built from plain values) and move on; a
single worker task drains the queue, retrying each job with exponential
backoff.  Failures are logged and dropped, never raised to the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from admin_auth.core.config import Settings

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[object]]


class NotificationDispatcher:
    def __init__(
        self,
        *,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        queue_size: int = 1000,
    ):
        self._max_retries = max(1, max_retries)
        self._base_delay = max(0.0, base_delay)
        self._max_delay = max(self._base_delay, max_delay)
        self._queue: asyncio.Queue[tuple[str, JobFactory]] = asyncio.Queue(maxsize=queue_size)
        self._worker: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, config: Settings) -> "NotificationDispatcher":
        return cls(
            max_retries=config.NOTIFY_MAX_RETRIES,
            base_delay=config.NOTIFY_RETRY_BASE_SECONDS,
            max_delay=config.NOTIFY_RETRY_MAX_SECONDS,
            queue_size=config.NOTIFY_QUEUE_SIZE,
        )

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.info("Notification dispatcher started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Give queued jobs `timeout` seconds to finish, then cancel the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Notification dispatcher stopped with %d jobs pending", self._queue.qsize())
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Notification dispatcher stopped")

    def submit(self, name: str, factory: JobFactory) -> bool:
        try:
            self._queue.put_nowait((name, factory))
        except asyncio.QueueFull:
            logger.warning("Notification queue full, dropping %s", name)
            return False
        return True

    async def _run(self) -> None:
        while True:
            name, factory = await self._queue.get()
            try:
                await self.deliver(name, factory)
            finally:
                self._queue.task_done()

    async def deliver(self, name: str, factory: JobFactory) -> bool:
        delay = self._base_delay
        for attempt in range(1, self._max_retries + 1):
            try:
                await factory()
                return True
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if attempt >= self._max_retries:
                    logger.error("Notification %s failed after %d attempts: %s", name, attempt, exc)
                    return False
                logger.warning(
                    "Notification %s failed (attempt %d/%d): %s", name, attempt, self._max_retries, exc
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_delay)
        return False


class AccountNotifier:
    """
    Turns account events into queued email jobs.

    Values are copied out of the ORM objects at submit time; the job
    closures only ever see plain strings, dicts and datetimes.  Each
    method honours the recipient's notification preferences and returns
    whether a job was queued.
    """

    def __init__(self, dispatcher: NotificationDispatcher, mailer):
        self.dispatcher = dispatcher
        self.mailer = mailer

    def login(self, account, device, login_time) -> bool:
        if not account.notify_new_login:
            return False
        email, name, info = account.email, account.name, device.as_dict()
        return self.dispatcher.submit(
            f"login_notification:{email}",
            lambda: self.mailer.send_login_notification(
                email=email, name=name, device=info, login_time=login_time
            ),
        )

    def security_alert(self, account, threats: list[str], device) -> bool:
        if not threats or not account.notify_suspicious_activity:
            return False
        email, name, info, items = account.email, account.name, device.as_dict(), list(threats)
        return self.dispatcher.submit(
            f"security_alert:{email}",
            lambda: self.mailer.send_security_alert(email=email, name=name, threats=items, device=info),
        )

    def account_locked(self, account, device, minutes: int) -> bool:
        if not account.notify_security_alerts:
            return False
        email, name, info = account.email, account.name, device.as_dict()
        attempts = account.failed_login_attempts
        return self.dispatcher.submit(
            f"account_locked:{email}",
            lambda: self.mailer.send_account_locked_alert(
                email=email, name=name, minutes=minutes, attempts=attempts, device=info
            ),
        )

    def password_changed(self, account, changed_at) -> bool:
        if not account.notify_security_alerts:
            return False
        email, name = account.email, account.name
        return self.dispatcher.submit(
            f"password_changed:{email}",
            lambda: self.mailer.send_password_changed_notice(email=email, name=name, changed_at=changed_at),
        )

    def reset_code(self, account, code: str, ttl_minutes: int) -> bool:
        email, name = account.email, account.name
        return self.dispatcher.submit(
            f"password_reset:{email}",
            lambda: self.mailer.send_password_reset_email(
                email=email, name=name, code=code, ttl_minutes=ttl_minutes
            ),
        )

    def approved(self, account, approver_name: str) -> bool:
        email, name = account.email, account.name
        return self.dispatcher.submit(
            f"approval:{email}",
            lambda: self.mailer.send_approval_notification(email=email, name=name, approved_by=approver_name),
        )

    def rejected(self, account, reason: str | None) -> bool:
        email, name = account.email, account.name
        return self.dispatcher.submit(
            f"rejection:{email}",
            lambda: self.mailer.send_rejection_notification(email=email, name=name, reason=reason),
        )

    def new_registration(self, recipients, applicant) -> int:
        """Alert every opted-in principal; returns how many jobs were queued."""
        applicant_name, applicant_email = applicant.name, applicant.email
        queued = 0
        for principal in recipients:
            if not principal.notify_new_registration:
                continue
            email, name = principal.email, principal.name
            queued += self.dispatcher.submit(
                f"new_registration:{email}",
                lambda email=email, name=name: self.mailer.send_new_registration_alert(
                    email=email,
                    name=name,
                    applicant_name=applicant_name,
                    applicant_email=applicant_email,
                ),
            )
        return queued
