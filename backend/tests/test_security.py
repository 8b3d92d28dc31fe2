"""
Test per core/security: claim dei token e hash delle password.
"""

import uuid

import pytest
from jose import jwt

from isp_billing.core.config import settings
from isp_billing.core.exceptions import AuthenticationError
from isp_billing.core.security import (
    TOKEN_TYPE_CLIENT,
    TOKEN_TYPE_STAFF,
    create_client_token,
    create_pdf_token,
    create_staff_token,
    decode_token,
    hash_password,
    legacy_sha256,
    needs_rehash,
    verify_password,
)


# ============================================================
# Claim dei token
# ============================================================


class TestTokenClaims:
    """Test per i nomi dei claim letti dalle app."""

    def test_staff_claims(self):
        """Test token del personale con Rol e NombreCompleto."""
        user_id = str(uuid.uuid4())
        token, _ = create_staff_token(user_id, "Caja", "Ana Gómez", "caja1")

        claims = jwt.get_unverified_claims(token)

        assert claims["Rol"] == "Caja"
        assert claims["NombreCompleto"] == "Ana Gómez"
        assert claims["sub"] == user_id
        assert claims["iss"] == settings.jwt_issuer
        assert claims["aud"] == settings.jwt_audience
        assert {"exp", "iat", "jti"} <= set(claims)
        assert "role" not in claims
        assert "full_name" not in claims

    def test_client_claims(self):
        """Test token self-service con ClienteId, Codigo, Nombre e Rol=Cliente."""
        client_id = str(uuid.uuid4())
        token, _ = create_client_token(client_id, "CLI-001", "Juan Pérez")

        claims = jwt.get_unverified_claims(token)

        assert claims["ClienteId"] == client_id
        assert claims["Codigo"] == "CLI-001"
        assert claims["Nombre"] == "Juan Pérez"
        assert claims["Rol"] == "Cliente"
        assert "client_id" not in claims

    def test_client_name_falls_back_to_code(self):
        """Test senza nome il claim Nombre riporta il codice."""
        token, _ = create_client_token(str(uuid.uuid4()), "CLI-007", "")

        assert jwt.get_unverified_claims(token)["Nombre"] == "CLI-007"

    def test_decode_reads_custom_claims(self):
        """Test decode_token mappa i claim personalizzati sul payload."""
        client_id = str(uuid.uuid4())
        staff, _ = create_staff_token(str(uuid.uuid4()), "Administrador", "Admin", "admin")
        client, _ = create_client_token(client_id, "CLI-001", "Juan Pérez")

        staff_payload = decode_token(staff, expected_type=TOKEN_TYPE_STAFF)
        client_payload = decode_token(client, expected_type=TOKEN_TYPE_CLIENT)

        assert staff_payload.role == "Administrador"
        assert staff_payload.full_name == "Admin"
        assert staff_payload.username == "admin"
        assert client_payload.client_id == client_id
        assert client_payload.code == "CLI-001"
        assert client_payload.full_name == "Juan Pérez"
        assert client_payload.role == "Cliente"

    def test_wrong_token_type(self):
        """Test un token PDF non vale come token cliente."""
        token, _ = create_pdf_token(str(uuid.uuid4()))

        with pytest.raises(AuthenticationError):
            decode_token(token, expected_type=TOKEN_TYPE_CLIENT)


# ============================================================
# Password
# ============================================================


class TestPasswords:
    """Test per bcrypt e hash SHA-256 legacy."""

    def test_bcrypt_roundtrip(self):
        """Test verifica di una password bcrypt."""
        hashed = hash_password("secret")

        assert hashed.startswith("$2")
        assert verify_password("secret", hashed)
        assert not verify_password("wrong", hashed)
        assert not needs_rehash(hashed)

    def test_legacy_hash(self):
        """Test un hash SHA-256 legacy è valido ma va rigenerato."""
        hashed = legacy_sha256("secret")

        assert verify_password("secret", hashed)
        assert needs_rehash(hashed)
