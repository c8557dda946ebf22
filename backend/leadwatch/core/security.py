"""
Secrets at rest: Fernet encryption for OAuth tokens.
"""
from cryptography.fernet import Fernet

from leadwatch.core.config import settings
from leadwatch.core.exceptions import ConfigurationError


def _get_fernet() -> Fernet:
    key = settings.CREDENTIAL_ENCRYPTION_KEY
    if not key:
        raise ConfigurationError(
            "CREDENTIAL_ENCRYPTION_KEY not set. "
            "Generate one with: python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
        )
    return Fernet(key.encode())


def encrypt_credential(plaintext: str) -> str:
    """Encrypt a credential (access token, refresh token) for database storage"""
    return _get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_credential(ciphertext: str) -> str:
    """Decrypt a credential from the database"""
    return _get_fernet().decrypt(ciphertext.encode()).decode()
