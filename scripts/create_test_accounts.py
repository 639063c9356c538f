"""Create test accounts (providers and customers) for local development.

Run after database migration:

    python -m scripts.create_test_accounts
"""

import asyncio
import secrets

from sqlalchemy import select

from app.core.security import hash_password
from app.db.session import AsyncSessionLocal
from app.models.user import User

# Test account definitions
TEST_ACCOUNTS = [
    {
        "email": "provider1@test.slotbook.local",
        "name": "Test Provider One",
        "provider": True,
    },
    {
        "email": "provider2@test.slotbook.local",
        "name": "Test Provider Two",
        "provider": True,
    },
    {
        "email": "customer1@test.slotbook.local",
        "name": "Test Customer One",
        "provider": False,
    },
    {
        "email": "customer2@test.slotbook.local",
        "name": "Test Customer Two",
        "provider": False,
    },
]


def generate_temp_password() -> str:
    """Generate a temporary password for test accounts."""
    return f"Test{secrets.token_urlsafe(8)}!"


async def create_accounts_db() -> tuple[list[dict], list[str]]:
    """Create test accounts in database."""
    async with AsyncSessionLocal() as session:
        created = []
        skipped = []

        for account in TEST_ACCOUNTS:
            existing = await session.scalar(
                select(User).where(User.email == account["email"])
            )

            if existing:
                skipped.append(account["email"])
                continue

            temp_password = generate_temp_password()
            session.add(
                User(
                    email=account["email"],
                    name=account["name"],
                    is_provider=account["provider"],
                    hashed_password=hash_password(temp_password),
                )
            )
            created.append({
                "email": account["email"],
                "password": temp_password,
                "provider": account["provider"],
            })

        await session.commit()

        return created, skipped


def print_accounts(created: list[dict], skipped: list[str]) -> None:
    """Print created accounts summary."""
    print("=" * 60)
    print("TEST ACCOUNTS")
    print("=" * 60)

    for account in created:
        kind = "provider" if account["provider"] else "customer"
        print(f"  {account['email']:<36} {account['password']:<20} ({kind})")

    for email in skipped:
        print(f"  {email:<36} already exists, skipped")


if __name__ == "__main__":
    created, skipped = asyncio.run(create_accounts_db())
    print_accounts(created, skipped)
