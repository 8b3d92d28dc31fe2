"""
Ricrea lo schema del database ISP Billing e carica i dati iniziali.

Uso (con il pacchetto installato, es. pip install -e .):
    python reset_db.py            # drop + create + dati iniziali
    python reset_db.py --no-seed  # solo drop + create
"""

import argparse
import asyncio

from isp_billing.core.database import AsyncSessionLocal, engine
from isp_billing.core.seed import SeedLoader
from isp_billing.models import Base


async def reset(seed: bool = True) -> None:
    print("Connessione al database, eliminazione tabelle...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tabelle eliminate. Creazione nuove tabelle...")
        await conn.run_sync(Base.metadata.create_all)

    if seed:
        async with AsyncSessionLocal() as session:
            applied = await SeedLoader().run(session)
        print("Dati iniziali caricati:", ", ".join(k for k, v in applied.items() if v))

    await engine.dispose()
    print("Database resettato con successo!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Reset del database ISP Billing")
    parser.add_argument("--no-seed", action="store_true", help="Non caricare i dati iniziali")
    args = parser.parse_args()
    asyncio.run(reset(seed=not args.no_seed))
