"""
Plain Schnorr signatures over secp256k1.

A blind FROST signature, once unblinded by the coordinator, is an ordinary
Schnorr signature (R, z) checked with zG ≟ R + cY, c = H2(R, Y, m). Nothing in
this module knows about thresholds or blinding: a verifier cannot tell a
threshold signature from one made by sign() with the whole key.
"""

from __future__ import annotations
import secrets
from typing import Union
from .constants import Q, POINT_SIZE, SCALAR_SIZE
from .hashes import H2, H3, encode_scalar, hash_to_scalar
from .point import Point, G


def challenge_hash(nonce_commitment: Point, public_key: Point, message: bytes) -> int:
    """
    Compute the challenge binding the nonce commitment, public key and message.

    Parameters:
    nonce_commitment (Point): The signature's R.
    public_key (Point): The signer's public key Y.
    message (bytes): The message being signed.

    Returns:
    int: c = H2(R, Y, m) reduced modulo Q.
    """
    return hash_to_scalar(
        H2(nonce_commitment.sec_serialize() + public_key.sec_serialize() + message)
    )


class Signature:
    """Class representing a Schnorr signature (R, z)."""

    SIZE = POINT_SIZE + SCALAR_SIZE

    def __init__(self, nonce_commitment: Point, z: int):
        # R
        self.nonce_commitment = nonce_commitment
        # z
        self.z = z

    @classmethod
    def deserialize(cls, data: Union[bytes, str]) -> Signature:
        """
        Parse a signature from SEC1(R) || z, as raw bytes or hex.

        Raises:
        ValueError: If the input has the wrong length, R is not a valid point,
        or z is not a scalar.
        """
        try:
            raw = bytes.fromhex(data) if isinstance(data, str) else bytes(data)
        except ValueError as e:
            raise ValueError("Invalid hex input for a signature.") from e
        if len(raw) != cls.SIZE:
            raise ValueError(f"A signature must be exactly {cls.SIZE} bytes long.")

        nonce_commitment = Point.sec_deserialize(raw[:POINT_SIZE])
        z = int.from_bytes(raw[POINT_SIZE:], "big")
        if z >= Q:
            raise ValueError("Signature scalar is not reduced modulo Q.")
        return cls(nonce_commitment, z)

    def serialize(self) -> bytes:
        return self.nonce_commitment.sec_serialize() + encode_scalar(self.z)

    def hex(self) -> str:
        return self.serialize().hex()

    def verify(self, public_key: Point, message: bytes) -> bool:
        return verify(self, public_key, message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Signature):
            return NotImplemented
        return self.nonce_commitment == other.nonce_commitment and self.z == other.z

    def __hash__(self) -> int:
        return hash((self.nonce_commitment, self.z))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.hex()})"


def verify(signature: Signature, public_key: Point, message: bytes) -> bool:
    """
    Verify a Schnorr signature against a public key and message.

    Returns:
    bool: True if zG == R + cY, False otherwise, including for malformed
    signatures and keys.
    """
    if not isinstance(signature, Signature) or not isinstance(public_key, Point):
        return False
    R = signature.nonce_commitment
    z = signature.z
    if not isinstance(R, Point) or R.is_zero() or not R.is_on_curve():
        return False
    if public_key.is_zero() or not public_key.is_on_curve():
        return False
    if not isinstance(z, int) or not 0 <= z < Q:
        return False

    # c = H2(R, Y, m)
    c = challenge_hash(R, public_key, message)
    # g^z ≟ R * Y^c
    return z * G == R + c * public_key


def sign(secret: int, message: bytes) -> Signature:
    """
    Produce a single-key Schnorr signature.

    Raises:
    ValueError: If the secret is not a nonzero scalar.
    """
    if not isinstance(secret, int) or not 0 < secret < Q:
        raise ValueError("Secret key must be a nonzero scalar.")

    public_key = secret * G
    nonce = 0
    while nonce == 0:
        nonce = hash_to_scalar(H3(secrets.token_bytes(32) + encode_scalar(secret)))
    R = nonce * G
    c = challenge_hash(R, public_key, message)
    return Signature(R, (nonce + c * secret) % Q)
