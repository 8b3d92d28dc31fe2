"""
Service Layer per l'entità Client
Progetto: ISP Billing (Gestionale ISP)

Logica di business per l'anagrafica clienti:
- Codice cliente generato automaticamente (CLI-NNN)
- Controllo duplicati su cédula ed email
- Attivazione / disattivazione
- Eliminazione consentita solo senza fatture
- Abbonamenti ai servizi del catalogo
"""

import logging
import re
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.exceptions import ConflictError, DuplicateError, NotFoundError
from isp_billing.models import Client, ClientServiceSubscription, Invoice, Service
from isp_billing.schemas.catalog import SubscriptionCreate
from isp_billing.schemas.client import ClientCreate, ClientUpdate

# Logger per questo modulo
logger = logging.getLogger(__name__)

CLIENT_CODE_PREFIX = "CLI-"
_CODE_NUMBER = re.compile(r"^CLI-(\d+)$")


class ClientService:
    """
    Service per le operazioni CRUD sui clienti.

    Metodi asincroni che ricevono la sessione dal chiamante,
    senza dipendenze da FastAPI.
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        include_inactive: bool = True,
        only_inactive: bool = False,
    ) -> tuple[list[Client], int]:
        """
        Recupera la lista paginata dei clienti.

        Args:
            db: Sessione database
            page: Numero pagina (da 1)
            per_page: Elementi per pagina
            search: Testo cercato in codice, nome, telefono, cédula, email
            include_inactive: Se False, solo clienti attivi
            only_inactive: Se True, solo clienti disattivati

        Returns:
            Tuple di (lista clienti, totale count)
        """
        conditions = []

        if only_inactive:
            conditions.append(Client.is_active.is_(False))
        elif not include_inactive:
            conditions.append(Client.is_active.is_(True))

        if search:
            term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Client.code.ilike(term),
                    Client.name.ilike(term),
                    Client.phone.ilike(term),
                    Client.id_number.ilike(term),
                    Client.email.ilike(term),
                )
            )

        query = select(Client).where(*conditions).order_by(Client.name.asc())
        query = query.offset((page - 1) * per_page).limit(per_page)
        clients = list((await db.execute(query)).scalars().all())

        count_query = select(func.count()).select_from(Client).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        logger.info(
            "Recuperati %s clienti su %s totali (pagina %s)",
            len(clients), total, page,
        )
        return clients, total

    async def get_by_id(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
    ) -> Client:
        """
        Recupera un cliente tramite ID.

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        client = await db.get(Client, client_id)
        if client is None:
            logger.warning("Cliente non trovato: %s", client_id)
            raise NotFoundError(f"Cliente con ID {client_id} non trovato")
        return client

    async def get_by_code(self, db: AsyncSession, code: str) -> Optional[Client]:
        """Cerca un cliente per codice (case-insensitive)."""
        result = await db.execute(
            select(Client).where(func.upper(Client.code) == code.strip().upper())
        )
        return result.scalar_one_or_none()

    async def generate_code(self, db: AsyncSession) -> str:
        """
        Prossimo codice cliente libero nel formato CLI-NNN.

        Il numero è il massimo dei codici CLI-* esistenti + 1.
        """
        result = await db.execute(
            select(Client.code).where(Client.code.like(f"{CLIENT_CODE_PREFIX}%"))
        )
        used = set(result.scalars().all())
        numbers = [int(m.group(1)) for m in map(_CODE_NUMBER.match, used) if m]
        next_number = max(numbers, default=0) + 1

        code = f"{CLIENT_CODE_PREFIX}{next_number:03d}"
        while code in used:
            next_number += 1
            code = f"{CLIENT_CODE_PREFIX}{next_number:03d}"
        return code

    async def _check_duplicates(
        self,
        db: AsyncSession,
        name: Optional[str],
        id_number: Optional[str],
        email: Optional[str],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Verifica che cédula ed email non siano già registrate.

        Raises:
            DuplicateError: Se un altro cliente usa la stessa cédula o email
        """
        if id_number:
            query = select(Client).where(func.upper(Client.id_number) == id_number.upper())
            if exclude_id:
                query = query.where(Client.id != exclude_id)
            existing = (await db.execute(query)).scalars().first()
            if existing:
                if name and existing.name.strip().lower() == name.strip().lower():
                    raise DuplicateError(
                        f"Esiste già il cliente {existing.code} con lo stesso nome e cédula"
                    )
                raise DuplicateError(f"Cédula '{id_number}' già registrata per il cliente {existing.code}")

        if email:
            query = select(Client).where(func.lower(func.trim(Client.email)) == email.strip().lower())
            if exclude_id:
                query = query.where(Client.id != exclude_id)
            existing = (await db.execute(query)).scalars().first()
            if existing:
                raise DuplicateError(f"Email '{email}' già registrata per il cliente {existing.code}")

    async def create(self, db: AsyncSession, client_data: ClientCreate) -> Client:
        """
        Crea un nuovo cliente.

        Raises:
            DuplicateError: codice, cédula o email già in uso
        """
        email = str(client_data.email) if client_data.email else None
        await self._check_duplicates(db, client_data.name, client_data.id_number, email)

        if client_data.code:
            if await self.get_by_code(db, client_data.code):
                raise DuplicateError(f"Codice cliente '{client_data.code}' già in uso")
            code = client_data.code
        else:
            code = await self.generate_code(db)

        client = Client(
            code=code,
            name=client_data.name,
            phone=client_data.phone,
            id_number=client_data.id_number,
            email=email,
            is_active=True,
            invoice_count=0,
        )
        db.add(client)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error("IntegrityError creazione cliente %s: %s", code, e.orig)
            raise DuplicateError("Cliente già esistente")

        await db.refresh(client)
        logger.info("Creato nuovo cliente: %s - %s", client.code, client.name)
        return client

    async def update(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        client_data: ClientUpdate,
    ) -> Client:
        """
        Aggiorna un cliente esistente (solo i campi inviati).

        Raises:
            NotFoundError: Se il cliente non esiste
            DuplicateError: Se cédula o email sono già in uso
        """
        client = await self.get_by_id(db, client_id)
        update_data = client_data.model_dump(exclude_unset=True)
        if update_data.get("email") is not None:
            update_data["email"] = str(update_data["email"])

        await self._check_duplicates(
            db,
            update_data.get("name", client.name),
            update_data.get("id_number") if update_data.get("id_number") != client.id_number else None,
            update_data.get("email") if update_data.get("email") != client.email else None,
            exclude_id=client.id,
        )

        for field, value in update_data.items():
            setattr(client, field, value)

        await db.commit()
        await db.refresh(client)
        logger.info("Aggiornato cliente: %s - %s", client.code, client.name)
        return client

    async def set_active(self, db: AsyncSession, client_id: uuid.UUID, active: bool) -> Client:
        """Attiva o disattiva un cliente."""
        client = await self.get_by_id(db, client_id)
        client.is_active = active
        await db.commit()
        await db.refresh(client)
        logger.info("Cliente %s %s", client.code, "attivato" if active else "disattivato")
        return client

    async def delete(self, db: AsyncSession, client_id: uuid.UUID) -> None:
        """
        Elimina fisicamente un cliente.

        Raises:
            NotFoundError: Se il cliente non esiste
            ConflictError: Se il cliente ha fatture (va disattivato)
        """
        client = await self.get_by_id(db, client_id)

        invoice_count = (
            await db.execute(
                select(func.count()).select_from(Invoice).where(Invoice.client_id == client_id)
            )
        ).scalar() or 0
        if invoice_count:
            logger.warning("Eliminazione rifiutata: cliente %s ha %s fatture", client.code, invoice_count)
            raise ConflictError(
                f"Il cliente {client.code} ha {invoice_count} fatture: disattivarlo invece di eliminarlo"
            )

        await db.delete(client)
        await db.commit()
        logger.info("Eliminato cliente: %s - %s", client.code, client.name)

    # ------------------------------------------------------------
    # Abbonamenti
    # ------------------------------------------------------------
    async def list_subscriptions(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
    ) -> list[ClientServiceSubscription]:
        await self.get_by_id(db, client_id)
        result = await db.execute(
            select(ClientServiceSubscription)
            .where(ClientServiceSubscription.client_id == client_id)
            .order_by(ClientServiceSubscription.start_date.asc())
        )
        return list(result.scalars().all())

    async def add_subscription(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        data: SubscriptionCreate,
    ) -> ClientServiceSubscription:
        """
        Sottoscrive un servizio per il cliente.

        Raises:
            NotFoundError: cliente o servizio inesistente
            ConflictError: servizio disattivato o già sottoscritto
        """
        client = await self.get_by_id(db, client_id)
        service = await db.get(Service, data.service_id)
        if service is None:
            raise NotFoundError(f"Servizio con ID {data.service_id} non trovato")
        if not service.is_active:
            raise ConflictError(f"Il servizio {service.name} non è attivo")

        existing = await db.execute(
            select(ClientServiceSubscription).where(
                ClientServiceSubscription.client_id == client_id,
                ClientServiceSubscription.service_id == data.service_id,
                ClientServiceSubscription.is_active.is_(True),
            )
        )
        if existing.scalars().first():
            raise ConflictError(f"Il cliente {client.code} ha già il servizio {service.name}")

        subscription = ClientServiceSubscription(
            client_id=client_id,
            service_id=data.service_id,
            quantity=data.quantity,
            start_date=data.start_date or date.today(),
            end_date=data.end_date,
            is_active=True,
        )
        db.add(subscription)
        await db.commit()
        await db.refresh(subscription, ["service"])
        logger.info("Cliente %s: aggiunto servizio %s", client.code, service.name)
        return subscription

    async def remove_subscription(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        subscription_id: uuid.UUID,
    ) -> ClientServiceSubscription:
        """Chiude un abbonamento (is_active=False, end_date=oggi)."""
        subscription = await db.get(ClientServiceSubscription, subscription_id)
        if subscription is None or subscription.client_id != client_id:
            raise NotFoundError(f"Abbonamento {subscription_id} non trovato")
        subscription.is_active = False
        subscription.end_date = subscription.end_date or date.today()
        await db.commit()
        await db.refresh(subscription, ["service"])
        logger.info("Abbonamento %s chiuso", subscription_id)
        return subscription
