"""Credential hashing so actor secrets are never stored in plaintext."""

import hashlib
import hmac
import secrets

ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 200_000
SALT_BYTES = 16


def hash_credential(secret: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """
    Hash a secret with PBKDF2-SHA256 and a random salt.

    Returns:
        Encoded hash ``pbkdf2_sha256$<iterations>$<salt>$<digest>``
    """
    salt = secrets.token_hex(SALT_BYTES)
    digest = _derive(secret, salt, iterations)
    return f"{ALGORITHM}${iterations}${salt}${digest}"


def verify_credential(secret: str, encoded: str) -> bool:
    """Check a secret against an encoded hash. Malformed hashes never match."""
    try:
        algorithm, iterations, salt, digest = encoded.split("$")
        rounds = int(iterations)
        if algorithm != ALGORITHM or rounds <= 0:
            return False
        expected = _derive(secret, salt, rounds)
    except ValueError:
        return False

    return hmac.compare_digest(expected.encode(), digest.encode())


def _derive(secret: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256", secret.encode(), bytes.fromhex(salt), iterations
    ).hex()
