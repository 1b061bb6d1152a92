import hmac
import os

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

_SALT_BYTES = 16
_KEY_LENGTH = 64


def _kdf(salt: bytes) -> Scrypt:
    return Scrypt(salt=salt, length=_KEY_LENGTH, n=2**14, r=8, p=1)


def hash_password(password: str) -> str:
    """Derive a scrypt digest and return it as ``<hex digest>.<hex salt>``."""
    salt = os.urandom(_SALT_BYTES)
    digest = _kdf(salt).derive(password.encode("utf-8"))
    return f"{digest.hex()}.{salt.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Check ``password`` against a value produced by :func:`hash_password`."""
    try:
        digest_hex, salt_hex = stored.split(".", 1)
        expected = bytes.fromhex(digest_hex)
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    supplied = _kdf(salt).derive(password.encode("utf-8"))
    return hmac.compare_digest(supplied, expected)
