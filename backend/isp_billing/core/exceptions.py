"""
Eccezioni Custom per l'applicazione.
Progetto: ISP Billing (Gestionale ISP)

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori. I service sollevano queste eccezioni,
i router non le catturano: le converte l'handler registrato in main.py.

NOTA: BusinessValidationError è distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nei dati di input (FastAPI → 422)
- BusinessValidationError: violazioni delle regole di business (→ 400)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ConflictError",
    "AuthenticationError",
    "AuthorizationError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Errore interno del server"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail if detail is not None else self.default_detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Corpo JSON della risposta di errore."""
        body: Dict[str, Any] = {"detail": self.detail, "error_code": self.error_code}
        if self.extra:
            body.update(self.extra)
        return body


class NotFoundError(AppException):
    """Risorsa non trovata nel database."""

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    default_detail: str = "Risorsa non trovata"


class DuplicateError(AppException):
    """
    Tentativo di creare una risorsa duplicata.

    Utilizzata per violazioni di vincoli unique (es. cédula già registrata).
    """

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"
    default_detail: str = "Risorsa già esistente"


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "La fattura è già pagata"
        - "Le fatture appartengono a clienti diversi"
        - "L'importo applicato supera il saldo della fattura"
    """

    status_code: int = 400
    error_code: str = "VALIDATION_ERROR"
    default_detail: str = "Validazione dati fallita"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


class ConflictError(AppException):
    """
    Conflitto di stato.

    L'operazione non può essere eseguita a causa dello stato corrente
    della risorsa (es. eliminare una fattura con pagamenti).
    """

    status_code: int = 409
    error_code: str = "CONFLICT"
    default_detail: str = "Conflitto di stato"


class AuthenticationError(AppException):
    """Credenziali o token non validi."""

    status_code: int = 401
    error_code: str = "AUTHENTICATION_FAILED"
    default_detail: str = "Autenticazione non valida"


class AuthorizationError(AppException):
    """
    Accesso non autorizzato.

    Esempi di utilizzo:
        - "La fattura non appartiene al cliente autenticato"
        - "Solo gli amministratori possono accedere a questa risorsa"
    """

    status_code: int = 403
    error_code: str = "FORBIDDEN"
    default_detail: str = "Accesso non autorizzato"
