"""
Domain-separated hash functions of the blind FROST ciphersuite.

H1 derives binding factors, H2 is the Schnorr challenge, H3 derives nonces,
H4 hashes the session context and H5 hashes the encoded commitment list.
All of them are SHA-256; H1, H3, H4 and H5 are prefixed with the ciphersuite
context string and a per-function label, H2 is a tagged hash so that plain
Schnorr verifiers can compute it without knowing anything about FROST.
"""

from hashlib import sha256
from .constants import CONTEXT, CHALLENGE_TAG, Q, SCALAR_SIZE


def _labelled_hash(label: bytes, data: bytes) -> bytes:
    digest = sha256()
    digest.update(CONTEXT)
    digest.update(label)
    digest.update(data)
    return digest.digest()


def H1(data: bytes) -> bytes:
    """Binding factor hash."""
    return _labelled_hash(b"rho", data)


def H2(data: bytes) -> bytes:
    """Challenge hash, tagged as in BIP340: sha256(tag || tag || data)."""
    tag_hash = sha256(CHALLENGE_TAG).digest()
    digest = sha256()
    digest.update(tag_hash)
    digest.update(tag_hash)
    digest.update(data)
    return digest.digest()


def H3(data: bytes) -> bytes:
    """Nonce generation hash."""
    return _labelled_hash(b"nonce", data)


def H4(data: bytes) -> bytes:
    """Session context hash."""
    return _labelled_hash(b"msg", data)


def H5(data: bytes) -> bytes:
    """Commitment list hash."""
    return _labelled_hash(b"com", data)


def hash_to_scalar(digest: bytes) -> int:
    """Interpret a digest as a big-endian integer reduced modulo Q."""
    return int.from_bytes(digest, "big") % Q


def encode_scalar(value: int) -> bytes:
    """
    Encode a scalar, or a participant identifier, as 32 big-endian bytes.

    Raises:
    ValueError: If value is negative or does not fit in 32 bytes.
    """
    if not isinstance(value, int) or value < 0:
        raise ValueError("Only non-negative integers can be encoded.")
    if value.bit_length() > SCALAR_SIZE * 8:
        raise ValueError(f"Value does not fit in {SCALAR_SIZE} bytes.")
    return value.to_bytes(SCALAR_SIZE, "big")
