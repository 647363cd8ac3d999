"""
Connections to the GameFrame Snowflake account.

Provides a connection factory and context manager for Snowflake.
Most code never touches this module directly - the digest reads go
through the directory repositories, which handle the translation
between rows and domain models.
"""

import base64
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional, Protocol

from ...core.digest.errors import RemoteFetchError

logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a fake without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def close(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "GAMEFRAME"
    schema: str = "FEEDBACK"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


class SnowflakeConnectionError(RemoteFetchError):
    """The warehouse could not be reached or refused our credentials."""
    pass


def _load_private_key(pem_bytes: bytes) -> bytes:
    """
    Convert a PEM private key into the DER bytes Snowflake expects.

    Snowflake requires the private key as a bytes object, not a file
    path or a PEM string.
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    private_key = serialization.load_pem_private_key(
        pem_bytes,
        password=None,  # No password on the key
        backend=default_backend()
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def _read_private_key(config: SnowflakeConfig) -> Optional[bytes]:
    """Private key from base64 (deployments) or a file (local), if configured."""
    if config.private_key_base64:
        return _load_private_key(base64.b64decode(config.private_key_base64))
    if config.private_key_path:
        with open(config.private_key_path, 'rb') as key_file:
            return _load_private_key(key_file.read())
    return None


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Open a Snowflake connection and close it when the block exits.

    Supports both password and key-pair authentication. Key-pair auth
    wins if both are configured.

    Connection failures surface as SnowflakeConnectionError, which the
    API maps to 503.
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    connect_params = {
        'account': config.account,
        'user': config.user,
        'database': config.database,
        'schema': config.schema,
        'warehouse': config.warehouse,
        'role': config.role,
        'client_session_keep_alive': True,
    }

    # binascii.Error is a ValueError; a missing key file is an OSError
    try:
        private_key = _read_private_key(config)
    except (ValueError, TypeError, OSError) as e:
        logger.error(
            "Could not load Snowflake private key",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Invalid private key: {e}", cause=e) from e
    if private_key is not None:
        logger.info("Using key-pair authentication for Snowflake")
        connect_params['private_key'] = private_key
    elif config.password:
        logger.info("Using password authentication for Snowflake")
        connect_params['password'] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or a private key must be provided"
        )

    try:
        conn = snowflake.connector.connect(**connect_params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}", cause=e) from e

    logger.debug(
        "Established Snowflake connection",
        extra={
            "account": config.account,
            "database": config.database,
            "schema": config.schema,
        }
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )
