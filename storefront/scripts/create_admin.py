"""Seed an admin account: python -m storefront.scripts.create_admin <username> <password> [email]"""
import asyncio
import sys

from sqlalchemy.future import select

from storefront.models.user_models import User
from storefront.core.db import AsyncSessionLocal, init_models
from storefront.core.security import hash_password


async def create_admin(username: str, password: str, email: str = None):
    await init_models()
    async with AsyncSessionLocal() as session:
        existing = await session.execute(select(User).where(User.username == username))
        if existing.scalars().first():
            print(f"User '{username}' already exists")
            return

        admin = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role="admin",
            is_active=True
        )
        session.add(admin)
        await session.commit()
        print("Admin user created!")


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)
    asyncio.run(create_admin(*sys.argv[1:4]))
