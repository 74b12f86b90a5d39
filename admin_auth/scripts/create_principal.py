"""
One-time bootstrap script: creates the first PRINCIPAL admin.

Usage:
    python -m admin_auth.scripts.create_principal

You only need this ONCE.  After the principal exists, every other admin
self-registers and waits for the principal's approval.
"""

import asyncio
import getpass

from admin_auth.core.database import async_session_factory, engine
from admin_auth.models.admin import AdminAccount, AdminRole, AdminStatus
from admin_auth.models.base import utcnow
from admin_auth.services.account_service import email_taken, save_account


async def create_principal() -> None:
    async with async_session_factory() as session:
        # ── Collect input ────────────────────────────────────────────
        print("\n🔧  Admin Security Service: Principal Setup\n")
        email = input("  Principal email: ").strip().lower()
        name = input("  Full name:       ").strip()
        password = getpass.getpass("  Password:        ")
        confirm = getpass.getpass("  Confirm:         ")

        if password != confirm:
            print("\n❌  Passwords do not match.")
            await engine.dispose()
            return

        if not email or not name or not password:
            print("\n❌  All fields are required.")
            await engine.dispose()
            return

        if not 8 <= len(password) <= 72:
            print("\n❌  Password must be between 8 and 72 characters.")
            await engine.dispose()
            return

        # ── Check for existing account ───────────────────────────────
        if await email_taken(email, session):
            print(f"\n❌  An account with email '{email}' already exists.")
            await engine.dispose()
            return

        # ── Create the principal ─────────────────────────────────────
        principal = AdminAccount.register(
            name=name,
            email=email,
            password=password,
            role=AdminRole.PRINCIPAL,
            status=AdminStatus.APPROVED,
        )
        principal.approved_at = utcnow()
        await save_account(principal, session)
        await session.commit()

        print("\n✅  Principal admin created successfully!")
        print(f"    ID:    {principal.id}")
        print(f"    Email: {principal.email}")
        print(f"\n   You can now log in via POST /api/admin/login\n")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(create_principal())
