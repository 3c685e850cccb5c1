"""
Database seeding script for the first admin.

Admins can only be promoted by another admin, so the first one has to be
created here. Run after the database is reachable:

    python -m zapshift.seed_users ops@zapshift.com "Ops Desk"
"""

import asyncio
import sys

from zapshift.app.db.session import AsyncSessionLocal, Base, engine, utcnow
from zapshift.app.db.repository import user_repository
from zapshift.app.models.enums import UserRole

# Register every table before create_all
from zapshift.app.models import audit_log, parcel, payment, rider, user  # noqa: F401


async def seed_admin(email: str, name: str = "Admin") -> None:
    """
    Create the admin user, or promote the existing user with that email.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting admin seeding...")

        existing = await user_repository.find_one(db, email=email)

        if existing and existing.role == UserRole.ADMIN:
            print(f"ℹ️  {email} is already an admin, skipping seeding")
            return

        if existing:
            await user_repository.update(db, existing.id, {"role": UserRole.ADMIN})
            print(f"✅ Promoted {email} to admin")
        else:
            await user_repository.insert(db, {
                "email": email,
                "name": name,
                "role": UserRole.ADMIN,
                "created_at": utcnow(),
            })
            print(f"✅ Created admin {email}")

    await engine.dispose()
    print("\n🎉 Admin seeding completed successfully!")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python -m zapshift.seed_users <email> [name]")
        sys.exit(1)
    asyncio.run(seed_admin(sys.argv[1], *sys.argv[2:3]))
