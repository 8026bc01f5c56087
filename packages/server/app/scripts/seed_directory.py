"""
Script to seed a local directory: one owner, one organization with its
default unit, and the owner as organization member.
"""

import asyncio
import argparse

from sqlmodel import select

from app.core.database import get_session_context
from app.core.errors import NotFound
from app.core.logging import configure_logging
from app.models.user import User
from app.services import hierarchy, identity, members, slugs
from orgdir_shared.schemas.common import UnitType


async def seed(email: str, slug: str, name: str) -> None:
    async with get_session_context() as session:
        # 1. Ensure the owner exists
        result = await session.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()
        if not user:
            user = await identity.create_user(session, email, username=email.split("@")[0])
            print(f"Created user: {email}")
        else:
            print(f"User {email} already exists.")

        # 2. Ensure the organization exists
        try:
            org_id = await slugs.resolve(slug, session)
            print(f"Organization '{slug}' already exists.")
        except NotFound:
            org = await hierarchy.create_organization(name, "", slug, user.id, None, session)
            org_id = org.id
            print(f"Created organization '{slug}'.")

        # 3. Ensure membership exists
        await members.add_member(UnitType.ORGANIZATION, org_id, email, session)
        print(f"{email} is a member of '{slug}'.")

    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a local org directory.")
    parser.add_argument("--email", required=True, help="Email address of the owner")
    parser.add_argument("--slug", default="default", help="Slug of the organization")
    parser.add_argument("--name", default="Default Organization", help="Organization name")

    args = parser.parse_args()

    configure_logging("info", "text")
    asyncio.run(seed(args.email, args.slug, args.name))
