"""
This module defines the Participant class, a guardian in blind FROST. A
participant holds one secret share of the group key and, for each signing
session, commits to a fresh nonce pair in round 1 and turns the coordinator's
blinded challenge into a signature share in round 2. It never sees the
message being signed.

Nonce pairs are single-use. A pending pair is stored per session, removed
under a lock by the first sign() call for that session and wiped right after
the share is computed, so a second or concurrent call finds nothing to sign
with and raises StaleNonce.
"""

from __future__ import annotations
import logging
import secrets
import threading
from typing import Dict, Optional, Tuple
from .constants import Q
from .coordinator import NonceCommitment, SigningRequest
from .errors import InvalidParameters, NonceAlreadyUsed, StaleNonce
from .hashes import H3, encode_scalar, hash_to_scalar
from .point import Point, G
from .sharing import FeldmanCommitment, SecretShare, lagrange_coefficient

logger = logging.getLogger(__name__)


def nonce_generate(secret: int) -> int:
    """
    Derive a nonce from 32 fresh random bytes and a secret, so that a weak
    random source alone does not expose the nonce.

    Returns:
    int: H3(random || secret) reduced modulo Q, never zero.
    """
    nonce = 0
    while nonce == 0:
        nonce = hash_to_scalar(H3(secrets.token_bytes(32) + encode_scalar(secret)))
    return nonce


class NoncePair:
    """
    The secret nonces (d, e) behind one round 1 commitment.

    consume() hands the nonces out exactly once and wipes the pair.
    """

    __slots__ = ("_hiding", "_binding")

    def __init__(self, hiding: int, binding: int):
        self._hiding: Optional[int] = hiding
        self._binding: Optional[int] = binding

    @classmethod
    def generate(cls, secret: int) -> NoncePair:
        # (d_i, e_i) ⭠ $ ℤ*_q x ℤ*_q
        return cls(nonce_generate(secret), nonce_generate(secret))

    def commitment(self) -> NonceCommitment:
        """Return (D_i, E_i) = (g^d_i, g^e_i)."""
        if self._hiding is None or self._binding is None:
            raise NonceAlreadyUsed("Nonce pair has already been used.")
        return NonceCommitment(self._hiding * G, self._binding * G)

    def consume(self) -> Tuple[int, int]:
        """
        Return (d_i, e_i) and wipe the pair.

        Raises:
        NonceAlreadyUsed: If the pair was already consumed or wiped.
        """
        if self._hiding is None or self._binding is None:
            raise NonceAlreadyUsed("Nonce pair has already been used.")
        nonces = (self._hiding, self._binding)
        self.wipe()
        return nonces

    def wipe(self) -> None:
        self._hiding = None
        self._binding = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(<secret>)"


class Participant:
    """Class representing a blind FROST participant."""

    def __init__(self, share: SecretShare, commitment: FeldmanCommitment):
        """
        Initialize a participant from its dealer-issued share.

        Parameters:
        share (SecretShare): This participant's secret share.
        commitment (FeldmanCommitment): The dealer's public commitment.

        Raises:
        InvalidParameters: If the share does not verify against the commitment.
        """
        if not share.verify(commitment):
            raise InvalidParameters(
                f"Share {share.index} does not match the dealer's commitment."
            )

        self.index = share.index
        self.commitment = commitment
        self.public_key = commitment.public_key
        self._share: Optional[SecretShare] = share
        self._nonces: Dict[bytes, NoncePair] = {}
        self._lock = threading.Lock()

    @property
    def share(self) -> SecretShare:
        if self._share is None:
            raise ValueError(f"Participant {self.index} has been decommissioned.")
        return self._share

    def public_share(self) -> Point:
        """Return the public verification share Y_i = g^s_i."""
        return self.commitment.public_share(self.index)

    def commit(self, session_id: bytes) -> NonceCommitment:
        """
        Round 1: generate a nonce pair for the session and commit to it.

        A previous, unused pair for the same session is wiped and replaced.

        Returns:
        NonceCommitment: (D_i, E_i) to send to the coordinator.
        """
        nonce_pair = NoncePair.generate(self.share.value)
        nonce_commitment = nonce_pair.commitment()
        with self._lock:
            previous = self._nonces.pop(session_id, None)
            if previous is not None:
                logger.debug(
                    "Participant %d replaced its pending nonce for session %s",
                    self.index,
                    session_id.hex(),
                )
                previous.wipe()
            self._nonces[session_id] = nonce_pair

        logger.debug(
            "Participant %d committed to a nonce pair for session %s",
            self.index,
            session_id.hex(),
        )
        return nonce_commitment

    def has_pending_nonce(self, session_id: bytes) -> bool:
        with self._lock:
            return session_id in self._nonces

    def sign(self, request: SigningRequest) -> int:
        """
        Round 2: compute this participant's signature share.

        Parameters:
        request (SigningRequest): The blinded challenge, binding factor,
            Lagrange coefficient and signer set for this participant.

        Returns:
        int: z_i = d_i + (e_i * ρ_i) + λ_i * s_i * c.

        Raises:
        StaleNonce: If no unused commitment is pending for the session.
        InvalidParameters: If this participant is not in the signer set or the
            Lagrange coefficient disagrees with the signer set.
        """
        with self._lock:
            nonce_pair = self._nonces.pop(request.session_id, None)
        if nonce_pair is None:
            raise StaleNonce(
                f"Participant {self.index} has no pending nonce for session "
                f"{request.session_id.hex()}."
            )

        try:
            if self.index not in request.signer_indexes:
                raise InvalidParameters(
                    f"Participant {self.index} is not in the signer set."
                )
            # λ_i
            lagrange = lagrange_coefficient(request.signer_indexes, self.index)
            if lagrange != request.lagrange_coefficient:
                raise InvalidParameters(
                    "Lagrange coefficient does not match the signer set."
                )
            for value in (request.challenge, request.binding_factor):
                if not isinstance(value, int) or not 0 <= value < Q:
                    raise InvalidParameters("Challenge and binding factor must be scalars.")

            # d_i, e_i
            first_nonce, second_nonce = nonce_pair.consume()
            # z_i = d_i + (e_i * ρ_i) + λ_i * s_i * c
            signature_share = (
                first_nonce
                + (second_nonce * request.binding_factor)
                + lagrange * self.share.value * request.challenge
            ) % Q
        finally:
            nonce_pair.wipe()

        logger.debug(
            "Participant %d produced a signature share for session %s",
            self.index,
            request.session_id.hex(),
        )
        return signature_share

    def abandon(self, session_id: bytes) -> None:
        """Drop and wipe the pending nonce pair of an abandoned session."""
        with self._lock:
            nonce_pair = self._nonces.pop(session_id, None)
        if nonce_pair is not None:
            nonce_pair.wipe()

    def decommission(self) -> None:
        """Wipe the secret share and every pending nonce pair."""
        with self._lock:
            for nonce_pair in self._nonces.values():
                nonce_pair.wipe()
            self._nonces.clear()
            if self._share is not None:
                self._share.wipe()
                self._share = None
        logger.info("Participant %d decommissioned", self.index)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(index={self.index})"
