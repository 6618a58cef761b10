"""
Password hashing for stored user credentials.

Stored form: ``pbkdf2_sha256$<iterations>$<salt>$<digest>`` with urlsafe
base64 salt and digest. Credentials are checked by the identity provider
that issues bearer tokens; this service only stores the hash.
"""
import base64
import hashlib
import secrets

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 260_000


def pbkdf2_digest(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password must not be empty")
    salt = secrets.token_bytes(16)
    encoded = [
        base64.urlsafe_b64encode(part).decode("ascii")
        for part in (salt, pbkdf2_digest(password, salt, ITERATIONS))
    ]
    return "$".join([ALGORITHM, str(ITERATIONS), *encoded])
