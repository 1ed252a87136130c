"""
Secrets management for the search proxy services.
"""

import os
import json
import base64
from typing import Any, Dict, Optional
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
import logging

logger = logging.getLogger(__name__)

ENV_PREFIX = "SEARCH_"


class SecretsManager:
    """
    Resolves named secrets from the environment or an encrypted secrets file.

    Lookup order for ``get_secret("KAKAO_API_KEY")``:

    1. ``SEARCH_KAKAO_API_KEY`` environment variable
    2. ``KAKAO_API_KEY`` environment variable
    3. the ``KAKAO_API_KEY`` entry of the secrets file, decrypted with the
       master key
    """

    def __init__(self, master_key: Optional[str] = None, secrets_file: Optional[str] = None):
        """
        Initialize the secrets manager.

        Args:
            master_key: Master key for encryption/decryption of the secrets file
            secrets_file: Path to a JSON file of encrypted secrets
        """
        self.master_key = master_key or os.getenv(f"{ENV_PREFIX}MASTER_KEY")
        self.secrets_file = secrets_file or os.getenv(f"{ENV_PREFIX}SECRETS_FILE")
        self._fernet: Optional[Fernet] = self._create_fernet() if self.master_key else None

    def _create_fernet(self) -> Fernet:
        """
        Create a Fernet cipher instance.

        Returns:
            Fernet cipher instance
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=b'search_proxy_salt',
            iterations=100000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(self.master_key.encode()))
        return Fernet(key)

    def _require_fernet(self) -> Fernet:
        if self._fernet is None:
            raise ValueError("Master key is required for encrypted secrets")
        return self._fernet

    def encrypt_secret(self, secret: str) -> str:
        """
        Encrypt a secret.

        Args:
            secret: Secret to encrypt

        Returns:
            Encrypted secret
        """
        encrypted = self._require_fernet().encrypt(secret.encode())
        return base64.urlsafe_b64encode(encrypted).decode()

    def decrypt_secret(self, encrypted_secret: str) -> str:
        """
        Decrypt a secret.

        Args:
            encrypted_secret: Encrypted secret

        Returns:
            Decrypted secret
        """
        decoded = base64.urlsafe_b64decode(encrypted_secret.encode())
        try:
            decrypted = self._require_fernet().decrypt(decoded)
        except InvalidToken:
            logger.error("Failed to decrypt secret: invalid token or master key")
            raise
        return decrypted.decode()

    def get_secret(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a secret by key.

        Args:
            key: Secret key
            default: Default value if secret not found

        Returns:
            Secret value or default
        """
        for env_key in (f"{ENV_PREFIX}{key.upper()}", key.upper()):
            secret = os.getenv(env_key)
            if secret:
                return secret

        secrets = self._read_secrets_file()
        if key in secrets:
            if self._fernet is None:
                logger.warning(f"Secret '{key}' is in the secrets file but no master key is configured")
                return default
            try:
                return self.decrypt_secret(secrets[key])
            except (InvalidToken, ValueError) as e:
                logger.warning(f"Failed to decrypt secret '{key}': {e}")

        return default

    def set_secret(self, key: str, value: str) -> None:
        """
        Encrypt a secret and store it in the secrets file.

        Args:
            key: Secret key
            value: Secret value
        """
        encrypted_value = self.encrypt_secret(value)
        secret_file = self.secrets_file or "secrets.json"

        secrets = self._read_secrets_file(secret_file)
        secrets[key] = encrypted_value

        with open(secret_file, 'w') as f:
            json.dump(secrets, f, indent=2)
        self.secrets_file = secret_file
        logger.info(f"Secret '{key}' saved to {secret_file}")

    def _read_secrets_file(self, path: Optional[str] = None) -> Dict[str, Any]:
        secret_file = path or self.secrets_file
        if not secret_file or not os.path.exists(secret_file):
            return {}

        try:
            with open(secret_file, 'r') as f:
                secrets = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read secrets file: {e}")
            return {}

        if not isinstance(secrets, dict):
            logger.warning("Secrets file must contain a JSON object")
            return {}
        return secrets
