"""
Reset dello schema database PrintPro.

Uso:
    python reset_db.py
    python reset_db.py --admin-email admin@printpro.mg --admin-password Secret123
"""

import argparse
import asyncio
import os
import sys

# Aggiungi backend/ alla PYTHONPATH per importare printpro.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from printpro.core.database import AsyncSessionLocal, engine
from printpro.core.security import hash_password
from printpro.models import Base, User
from printpro.models.user import UserRole


async def reset(admin_email=None, admin_password=None):
    print("Connessione al database, eliminazione tabelle...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tabelle eliminate. Creazione nuove tabelle...")
        await conn.run_sync(Base.metadata.create_all)

    if admin_email and admin_password:
        async with AsyncSessionLocal() as db:
            db.add(User(
                email=admin_email.lower(),
                hashed_password=hash_password(admin_password),
                full_name="Amministratore",
                role=UserRole.ADMIN.value,
            ))
            await db.commit()
        print(f"Creato amministratore {admin_email}")

    await engine.dispose()
    print("Database resettato con successo!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ricrea le tabelle del database PrintPro")
    parser.add_argument("--admin-email", help="Email dell'amministratore iniziale")
    parser.add_argument("--admin-password", help="Password dell'amministratore iniziale")
    args = parser.parse_args()
    asyncio.run(reset(args.admin_email, args.admin_password))
