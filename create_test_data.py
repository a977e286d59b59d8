#!/usr/bin/env python3

import asyncio
import sys
import os

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from transconnect.database import create_tables, AsyncSessionLocal
from transconnect.models.base import utcnow
from transconnect.models.user import UserType
from transconnect.repositories.user_repository import UserRepository
from transconnect.schemas.message import TextDraft
from transconnect.schemas.user import UserCreate
from transconnect.services.matching import MatchingService
from transconnect.services.messaging import MessagingService

DEMO_PASSWORD = "demo12345"

ESCORTS = [
    {"email": "lena@example.com", "first_name": "Lena", "location": "Berlin",
     "hourly_rate": 200, "is_premium": True, "is_online": True},
    {"email": "sofia@example.com", "first_name": "Sofia", "location": "Hamburg",
     "hourly_rate": 180, "is_premium": True, "is_online": False},
    {"email": "maya@example.com", "first_name": "Maya", "location": "München",
     "hourly_rate": 250, "is_premium": False, "is_online": True},
    {"email": "zara@example.com", "first_name": "Zara", "location": "Köln",
     "hourly_rate": 170, "is_premium": False, "is_online": False},
]

CUSTOMERS = [
    {"email": "max@example.com", "first_name": "Max"},
    {"email": "jonas@example.com", "first_name": "Jonas"},
]


async def create_demo_users():
    async with AsyncSessionLocal() as db:
        user_repo = UserRepository(db)

        created_users = []
        for user_type, rows in ((UserType.ESCORT, ESCORTS), (UserType.CUSTOMER, CUSTOMERS)):
            for row in rows:
                existing_user = await user_repo.get_by_email(row["email"])
                if existing_user:
                    created_users.append(existing_user)
                    print(f"User {row['email']} exists (ID: {existing_user.id})")
                    continue

                user = await user_repo.create(UserCreate(
                    email=row["email"],
                    password=DEMO_PASSWORD,
                    first_name=row["first_name"],
                    user_type=user_type,
                ))
                user.location = row.get("location")
                user.hourly_rate = row.get("hourly_rate")
                user.is_premium = row.get("is_premium", False)
                user.is_online = row.get("is_online", False)
                user.last_seen = utcnow()
                await db.commit()
                created_users.append(user)
                print(f"Created {user_type.value}: {user.first_name} (ID: {user.id})")

        return created_users


async def create_demo_conversation(users):
    lena = next(u for u in users if u.email == "lena@example.com")
    max_ = next(u for u in users if u.email == "max@example.com")

    async with AsyncSessionLocal() as db:
        matching = MatchingService(db)
        for actor, target in ((max_, lena), (lena, max_)):
            if await matching.matches.get_edge(actor.id, target.id) is None:
                await matching.record_decision(actor.id, target.id, is_like=True)
        print(f"Mutual match: {max_.first_name} <-> {lena.first_name}")

        messaging = MessagingService(db)
        lines = [
            (max_, lena, "Hi Lena! Are you free on Friday?"),
            (lena, max_, "Hi Max, Friday evening works for me."),
            (max_, lena, "Great, see you then!"),
        ]
        for sender, receiver, text in lines:
            await messaging.send(sender.id, TextDraft(receiver_id=receiver.id, content=text))
            print(f"Message from {sender.first_name}: '{text[:30]}'")


async def main():
    print("Creating demo data for TransConnect...\n")

    try:
        print("1. Creating database tables...")
        await create_tables()

        print("2. Creating demo users...")
        users = await create_demo_users()
        print(f"Created/found {len(users)} users\n")

        print("3. Creating a mutual match with messages...")
        await create_demo_conversation(users)

        print("\nDemo data created. Every account uses the password:", DEMO_PASSWORD)
        print("  - API docs: http://localhost:8000/docs")
        print("  - WebSocket: ws://localhost:8000/ws?token=<accessToken>")

    except Exception as e:
        print(f"Error creating demo data: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

if __name__ == "__main__":
    asyncio.run(main())
