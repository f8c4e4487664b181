import asyncio
import hashlib
import hmac
import secrets

from loggers import get_logger
from src.core.errors.exceptions import HashingError

logger = get_logger(__name__)

SALT_BYTES = 16
SCRYPT_KEY_LENGTH = 64
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_MAXMEM = 64 * 1024 * 1024
HASH_SEPARATOR = ":"


def _derive_key(password: str, salt: str) -> bytes:
    try:
        return hashlib.scrypt(
            password.encode("utf-8"),
            salt=salt.encode("utf-8"),
            n=SCRYPT_N,
            r=SCRYPT_R,
            p=SCRYPT_P,
            maxmem=SCRYPT_MAXMEM,
            dklen=SCRYPT_KEY_LENGTH,
        )
    except (ValueError, MemoryError) as e:
        logger.error("Password key derivation failed: %s", e)
        raise HashingError("Password hashing failed")


def hash_password(password: str) -> str:
    """
    Hashes the provided password using scrypt and a fresh 128-bit random salt.

    :param password: The plaintext password as a string.
    :return: The stored form ``<salt hex>:<derived key hex>``.
    :raises HashingError: If the key derivation fails.
    """
    salt = secrets.token_hex(SALT_BYTES)
    derived_key = _derive_key(password, salt)
    return f"{salt}{HASH_SEPARATOR}{derived_key.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifies that a text password matches its hashed counterpart.

    A malformed stored value never raises, it is treated as a mismatch.

    :param plain_password: The text password provided by the user.
    :param hashed_password: The stored ``salt:hash`` value from the database.
    :return: True if the passwords match, False otherwise.
    """
    salt, _, stored_hash = (hashed_password or "").partition(HASH_SEPARATOR)
    if not salt or not stored_hash:
        return False

    try:
        expected = bytes.fromhex(stored_hash)
    except ValueError:
        return False

    derived_key = _derive_key(plain_password, salt)
    if len(expected) != len(derived_key):
        return False

    return hmac.compare_digest(expected, derived_key)


async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await asyncio.to_thread(verify_password, plain_password, hashed_password)


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def token_fingerprint(token: str, length: int = 12) -> str:
    """
    Short, log-safe reference to a token: a prefix of its SHA-256 digest.
    """
    return sha256_hex(token)[:length]
