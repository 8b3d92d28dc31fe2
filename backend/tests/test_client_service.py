"""
Test per ClientService e CatalogService: eliminazioni protette
e abbonamenti ai servizi.
"""

from datetime import date

import pytest
from sqlalchemy.exc import InvalidRequestError

from isp_billing.core.exceptions import ConflictError, NotFoundError
from isp_billing.models import Client, ClientServiceSubscription, Service
from isp_billing.models.inventory import Equipment
from isp_billing.schemas.catalog import SubscriptionCreate
from isp_billing.services.catalog_service import CatalogService
from isp_billing.services.client_service import ClientService


# ============================================================
# Clienti
# ============================================================


class TestClientDelete:
    """Test per ClientService.delete."""

    @pytest.mark.asyncio
    async def test_client_with_invoices_refused(self, db, make_client, make_invoice):
        """Test un cliente con fatture va disattivato, non eliminato."""
        client = await make_client()
        await make_invoice(client)

        with pytest.raises(ConflictError):
            await ClientService().delete(db, client.id)

        assert await db.get(Client, client.id) is not None

    @pytest.mark.asyncio
    async def test_client_without_invoices(self, db, make_client):
        """Test eliminazione di un cliente senza fatture."""
        client = await make_client()

        await ClientService().delete(db, client.id)

        with pytest.raises(NotFoundError):
            await ClientService().get_by_id(db, client.id)

    @pytest.mark.asyncio
    async def test_invoice_collection_not_lazy_loaded(self, db, make_client):
        """Test le fatture del cliente si leggono solo con una query esplicita."""
        client = await make_client()

        assert Client.invoices.property.lazy == "raise"
        assert Client.payments.property.lazy == "raise"
        assert Equipment.status_history.property.lazy == "raise"
        with pytest.raises(InvalidRequestError):
            _ = client.invoices


# ============================================================
# Abbonamenti
# ============================================================


class TestSubscriptions:
    """Test per add_subscription e remove_subscription."""

    @pytest.mark.asyncio
    async def test_duplicate_subscription(self, db, make_client, make_service):
        """Test lo stesso servizio attivo due volte."""
        client = await make_client()
        internet = await make_service()
        service = ClientService()
        await service.add_subscription(db, client.id, SubscriptionCreate(service_id=internet.id))

        with pytest.raises(ConflictError):
            await service.add_subscription(db, client.id, SubscriptionCreate(service_id=internet.id))

    @pytest.mark.asyncio
    async def test_inactive_service(self, db, make_client, make_service):
        """Test un servizio disattivato non si sottoscrive."""
        client = await make_client()
        internet = await make_service()
        internet.is_active = False
        await db.commit()

        with pytest.raises(ConflictError):
            await ClientService().add_subscription(
                db, client.id, SubscriptionCreate(service_id=internet.id)
            )

    @pytest.mark.asyncio
    async def test_remove_closes_subscription(self, db, make_client, make_service):
        """Test la rimozione chiude l'abbonamento e permette di riattivarlo."""
        client = await make_client()
        internet = await make_service()
        service = ClientService()
        subscription = await service.add_subscription(
            db, client.id, SubscriptionCreate(service_id=internet.id, start_date=date(2024, 1, 1))
        )

        closed = await service.remove_subscription(db, client.id, subscription.id)

        assert closed.is_active is False
        assert closed.end_date is not None
        again = await service.add_subscription(db, client.id, SubscriptionCreate(service_id=internet.id))
        assert again.id != subscription.id

    @pytest.mark.asyncio
    async def test_remove_other_client_subscription(self, db, make_client, make_service):
        """Test un abbonamento di un altro cliente risulta inesistente."""
        juan = await make_client()
        maria = await make_client(code="CLI-002", name="María López")
        internet = await make_service()
        service = ClientService()
        subscription = await service.add_subscription(
            db, juan.id, SubscriptionCreate(service_id=internet.id)
        )

        with pytest.raises(NotFoundError):
            await service.remove_subscription(db, maria.id, subscription.id)


# ============================================================
# Catalogo
# ============================================================


class TestCatalogDelete:
    """Test per CatalogService.delete."""

    @pytest.mark.asyncio
    async def test_service_with_subscription_refused(self, db, make_client, make_service):
        """Test un servizio sottoscritto non si elimina."""
        client = await make_client()
        internet = await make_service()
        db.add(
            ClientServiceSubscription(
                client_id=client.id, service_id=internet.id, quantity=1,
                start_date=date(2024, 1, 1), is_active=True,
            )
        )
        await db.commit()

        with pytest.raises(ConflictError):
            await CatalogService().delete(db, internet.id)

    @pytest.mark.asyncio
    async def test_service_with_invoice_refused(self, db, make_client, make_service, make_invoice):
        """Test un servizio fatturato non si elimina."""
        client = await make_client()
        internet = await make_service()
        invoice = await make_invoice(client)
        invoice.service_id = internet.id
        await db.commit()

        with pytest.raises(ConflictError):
            await CatalogService().delete(db, internet.id)

    @pytest.mark.asyncio
    async def test_unused_service(self, db, make_service):
        """Test eliminazione di un servizio mai usato."""
        internet = await make_service()

        await CatalogService().delete(db, internet.id)

        assert await db.get(Service, internet.id) is None
