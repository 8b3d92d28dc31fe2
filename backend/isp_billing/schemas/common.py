"""
Schemas Pydantic condivisi
Progetto: ISP Billing (Gestionale ISP)
"""

import math

from pydantic import BaseModel, ConfigDict, Field


def count_pages(total: int, per_page: int) -> int:
    """Numero di pagine per un totale di elementi (almeno 1)."""
    return max(1, math.ceil(total / per_page)) if per_page > 0 else 1


class PageMeta(BaseModel):
    """Metadati di paginazione comuni a tutte le liste."""

    total: int = Field(..., description="Numero totale di elementi", serialization_alias="totalItems")
    page: int = Field(..., description="Pagina corrente", serialization_alias="currentPage")
    per_page: int = Field(..., description="Elementi per pagina", serialization_alias="itemsPerPage")
    total_pages: int = Field(..., description="Numero totale di pagine", serialization_alias="totalPages")

    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    """Risposta semplice con messaggio."""

    message: str
