# scripts/create_admin.py
import argparse
import asyncio
import getpass
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db.database import AsyncSessionLocal, create_tables, disconnect_db
from models.user import UserRole
from schemas.user_schemas import UserCreate
from services.user_service import user_service
from utils.exceptions import ConflictException
from utils.logger import setup_logger

logger = setup_logger("CREATE_ADMIN")


async def create_admin(email: str, password: str, full_name: str) -> None:
    """Bootstrap the first ADMIN account; a no-op when the email is taken."""
    await create_tables()
    async with AsyncSessionLocal() as session:
        try:
            user = await user_service.create_user(
                session,
                UserCreate(
                    email=email, password=password, full_name=full_name, role=UserRole.ADMIN
                ),
            )
            logger.info(f"Admin account created: {user.email} ({user.id})")
        except ConflictException:
            logger.warning(f"A user with email {email} already exists; nothing to do")
    await disconnect_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an ADMIN user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--password", help="Prompted for when omitted")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    asyncio.run(create_admin(args.email, password, args.name))
