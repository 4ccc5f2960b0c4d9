"""
This module defines the Coordinator of blind FROST and the signing sessions it
runs. The coordinator is the only party that knows the message: it collects
the participants' nonce commitments, derives binding factors from a public
session transcript, blinds the group commitment and the challenge, and
finally verifies, aggregates and unblinds the signature shares into an
ordinary Schnorr signature.

Blinding. With R = ∑ D_i + ρ_i * E_i the coordinator draws (α, β) and sets

    R' = R + αG + βY,   c' = H2(R', Y, m),   c = c' + β.

Participants sign c, so z = ∑ z_i satisfies zG = R + cY, and the unblinded
z' = z + α satisfies z'G = R' + c'Y: (R', z') is a plain Schnorr signature on
m. A participant sees only c, which β makes uniformly random.

Transcript. ρ_i = H1(SEC1(Y) || H4(session_id || context) || H5(B) || i),
where B is the concatenation of i || SEC1(D_i) || SEC1(E_i) over the sorted
signer set and identifiers are 32-byte big-endian integers. The message is
never part of it.
"""

from __future__ import annotations
import logging
import secrets
import threading
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Set, Tuple
from .constants import Q
from .errors import (
    BlindFrostError,
    DuplicateParticipant,
    InvalidParameters,
    InvalidSignatureShare,
    SessionStateError,
    ThresholdNotMet,
    VerificationFailed,
)
from .hashes import H1, H4, H5, encode_scalar, hash_to_scalar
from .point import Point, G
from .schnorr import Signature, challenge_hash, verify
from .sharing import FeldmanCommitment, lagrange_coefficient

logger = logging.getLogger(__name__)


class NonceCommitment(NamedTuple):
    """Round 1 message: the commitments (D, E) = (g^d, g^e) to a nonce pair."""

    hiding: Point
    binding: Point


class SigningRequest(NamedTuple):
    """Round 1 response addressed to one participant."""

    session_id: bytes
    challenge: int
    binding_factor: int
    lagrange_coefficient: int
    signer_indexes: Tuple[int, ...]


class BlindingFactors:
    """The coordinator's secret (α, β) for one session."""

    __slots__ = ("_alpha", "_beta")

    def __init__(self, alpha: Optional[int] = None, beta: Optional[int] = None):
        self._alpha = alpha if alpha is not None else secrets.randbits(256) % Q
        self._beta = beta if beta is not None else secrets.randbits(256) % Q

    @property
    def alpha(self) -> int:
        if self._alpha is None:
            raise ValueError("Blinding factors have been wiped.")
        return self._alpha

    @property
    def beta(self) -> int:
        if self._beta is None:
            raise ValueError("Blinding factors have been wiped.")
        return self._beta

    def wipe(self) -> None:
        self._alpha = None
        self._beta = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(<secret>)"


def encode_group_commitment_list(
    commitments: Mapping[int, NonceCommitment], signer_indexes: Tuple[int, ...]
) -> bytes:
    """Encode B = ⟨(i, D_i, E_i)⟩, i ∈ S, in signer-set order."""
    return b"".join(
        encode_scalar(index)
        + commitments[index].hiding.sec_serialize()
        + commitments[index].binding.sec_serialize()
        for index in signer_indexes
    )


def compute_binding_factors(
    public_key: Point,
    session_id: bytes,
    context: bytes,
    commitments: Mapping[int, NonceCommitment],
    signer_indexes: Tuple[int, ...],
) -> Dict[int, int]:
    """
    Compute ρ_i for every signer from the public session transcript.

    Returns:
    Dict[int, int]: The binding factor of each index in signer_indexes.
    """
    rho_input_prefix = (
        public_key.sec_serialize()
        + H4(session_id + context)
        + H5(encode_group_commitment_list(commitments, signer_indexes))
    )
    return {
        index: hash_to_scalar(H1(rho_input_prefix + encode_scalar(index)))
        for index in signer_indexes
    }


def compute_group_commitment(
    commitments: Mapping[int, NonceCommitment],
    binding_factors: Mapping[int, int],
    signer_indexes: Tuple[int, ...],
) -> Point:
    """R = ∑ D_i + ρ_i * E_i, i ∈ S."""
    group_commitment = Point()  # Point at infinity
    for index in signer_indexes:
        hiding, binding = commitments[index]
        group_commitment += hiding + (binding_factors[index] * binding)
    return group_commitment


def verify_signature_share(
    share: int,
    commitment: NonceCommitment,
    binding_factor: int,
    challenge: int,
    lagrange: int,
    public_share: Point,
) -> bool:
    """
    Check a signature share against the signer's public share,
    g^z_i ≟ D_i + ρ_i * E_i + c * λ_i * Y_i.
    """
    if not isinstance(share, int) or isinstance(share, bool) or not 0 <= share < Q:
        return False
    expected = (
        commitment.hiding
        + (binding_factor * commitment.binding)
        + ((challenge * lagrange) % Q) * public_share
    )
    return share * G == expected


class SigningSession:
    """
    The state of one blind signing request.

    Every mutation happens under the session lock. Round 2 inputs are refused
    until aggregate_commitments() has fixed the signer set and the blinded
    challenge. Closing the session, explicitly or by leaving a with block,
    wipes the blinding factors.
    """

    def __init__(
        self,
        commitment: FeldmanCommitment,
        threshold: int,
        message: bytes,
        context: bytes = b"",
        session_id: Optional[bytes] = None,
    ):
        if not isinstance(message, bytes):
            raise InvalidParameters("Message must be bytes.")
        if not isinstance(context, bytes):
            raise InvalidParameters("Context must be bytes.")

        self.commitment = commitment
        self.public_key = commitment.public_key
        self.threshold = threshold
        self.session_id = session_id if session_id is not None else secrets.token_bytes(16)
        self.context = context
        self._message: Optional[bytes] = message

        self._lock = threading.Lock()
        self._commitments: Dict[int, NonceCommitment] = {}
        self._signature_shares: Dict[int, int] = {}
        self.signer_indexes: Optional[Tuple[int, ...]] = None
        self.binding_factors: Optional[Dict[int, int]] = None
        self.lagrange_coefficients: Optional[Dict[int, int]] = None
        self.challenge: Optional[int] = None
        self.blinded_commitment: Optional[Point] = None
        self._blinding: Optional[BlindingFactors] = None
        self.invalid_shares: Dict[int, InvalidSignatureShare] = {}
        self.signature: Optional[Signature] = None
        self.closed = False

    @property
    def round_one_closed(self) -> bool:
        return self.challenge is not None

    def _check_open(self) -> None:
        if self.closed:
            raise SessionStateError("Signing session is closed.")

    def _add_commitment(self, index: int, nonce_commitment: NonceCommitment) -> None:
        if self.round_one_closed:
            raise SessionStateError("Round 1 is closed for this session.")
        if (
            not isinstance(index, int)
            or isinstance(index, bool)
            or index < 1
            or index >= Q
        ):
            raise InvalidParameters("Participant index must be a positive integer.")
        if index in self._commitments:
            raise DuplicateParticipant(index)
        hiding, binding = nonce_commitment
        for point in (hiding, binding):
            if not isinstance(point, Point) or point.is_zero() or not point.is_on_curve():
                raise InvalidParameters(
                    f"Participant {index} sent an invalid nonce commitment."
                )
        self._commitments[index] = NonceCommitment(hiding, binding)

    def add_commitment(self, index: int, nonce_commitment: NonceCommitment) -> None:
        """
        Record a participant's round 1 commitment.

        Raises:
        DuplicateParticipant: If the index already committed.
        InvalidParameters: If the index or the points are invalid.
        SessionStateError: If round 1 is closed or the session is closed.
        """
        with self._lock:
            self._check_open()
            self._add_commitment(index, nonce_commitment)

    def aggregate_commitments(
        self, commitments: Optional[Mapping[int, NonceCommitment]] = None
    ) -> Dict[int, SigningRequest]:
        """
        Close round 1: fix the signer set, derive binding factors and the
        group commitment, blind it, and produce each signer's request.

        Parameters:
        commitments (Optional[Mapping[int, NonceCommitment]]): Commitments to
            add before closing, in addition to those already recorded.

        Returns:
        Dict[int, SigningRequest]: The round 1 response for each signer.

        Raises:
        ThresholdNotMet: If fewer than threshold participants committed.
        SessionStateError: If round 1 is already closed.
        """
        with self._lock:
            self._check_open()
            if self.round_one_closed:
                raise SessionStateError("Round 1 is closed for this session.")
            for index, nonce_commitment in (commitments or {}).items():
                self._add_commitment(index, nonce_commitment)
            if len(self._commitments) < self.threshold:
                raise ThresholdNotMet(
                    f"Need {self.threshold} commitments, received {len(self._commitments)}."
                )

            signer_indexes = tuple(sorted(self._commitments))
            binding_factors = compute_binding_factors(
                self.public_key,
                self.session_id,
                self.context,
                self._commitments,
                signer_indexes,
            )
            # R
            group_commitment = compute_group_commitment(
                self._commitments, binding_factors, signer_indexes
            )

            # R' = R + αG + βY
            blinding = BlindingFactors()
            blinded_commitment = (
                group_commitment + blinding.alpha * G + blinding.beta * self.public_key
            )
            while blinded_commitment.is_zero():
                blinding.wipe()
                blinding = BlindingFactors()
                blinded_commitment = (
                    group_commitment
                    + blinding.alpha * G
                    + blinding.beta * self.public_key
                )

            # c = H2(R', Y, m) + β
            challenge = (
                challenge_hash(blinded_commitment, self.public_key, self._message)
                + blinding.beta
            ) % Q

            self.signer_indexes = signer_indexes
            self.binding_factors = binding_factors
            self.lagrange_coefficients = {
                index: lagrange_coefficient(signer_indexes, index)
                for index in signer_indexes
            }
            self.blinded_commitment = blinded_commitment
            self._blinding = blinding
            self.challenge = challenge

        logger.info(
            "Session %s closed round 1 with signers %s",
            self.session_id.hex(),
            signer_indexes,
        )
        return {index: self.request_for(index) for index in signer_indexes}

    def request_for(self, index: int) -> SigningRequest:
        """
        Return the round 1 response for one signer.

        Raises:
        SessionStateError: If round 1 is still open.
        InvalidParameters: If index is not in the signer set.
        """
        with self._lock:
            if not self.round_one_closed:
                raise SessionStateError("Round 1 has not produced a challenge yet.")
            if index not in self.binding_factors:
                raise InvalidParameters(f"Participant {index} is not in the signer set.")
            return SigningRequest(
                self.session_id,
                self.challenge,
                self.binding_factors[index],
                self.lagrange_coefficients[index],
                self.signer_indexes,
            )

    def add_signature_share(self, index: int, share: int) -> None:
        """
        Record a participant's round 2 signature share.

        Raises:
        SessionStateError: If round 1 has not produced the challenge yet.
        InvalidParameters: If index is not in the signer set.
        DuplicateParticipant: If the index already sent a share.
        """
        with self._lock:
            self._check_open()
            self._add_signature_share(index, share)

    def _add_signature_share(self, index: int, share: int) -> None:
        if not self.round_one_closed:
            raise SessionStateError("Round 1 has not produced a challenge yet.")
        if index not in self.signer_indexes:
            raise InvalidParameters(f"Participant {index} is not in the signer set.")
        if index in self._signature_shares:
            raise DuplicateParticipant(index)
        self._signature_shares[index] = share

    def aggregate(self, signature_shares: Optional[Mapping[int, int]] = None) -> Signature:
        """
        Verify, aggregate and unblind the signature shares.

        Each share is checked on its own; failures are recorded in
        invalid_shares and do not stop the others from being checked.

        Returns:
        Signature: (R', z + α), a Schnorr signature on the message.

        Raises:
        ThresholdNotMet: If fewer than threshold valid shares remain.
        InvalidSignatureShare: If a signer's share is invalid or missing while
            at least threshold valid shares remain; the session cannot finish
            without that signer's nonce contribution.
        VerificationFailed: If the unblinded signature does not verify.
        SessionStateError: If round 1 is still open or the session is closed.
        """
        with self._lock:
            self._check_open()
            for index, share in (signature_shares or {}).items():
                self._add_signature_share(index, share)
            if not self.round_one_closed:
                raise SessionStateError("Round 1 has not produced a challenge yet.")

            valid: List[int] = []
            for index, share in sorted(self._signature_shares.items()):
                if verify_signature_share(
                    share,
                    self._commitments[index],
                    self.binding_factors[index],
                    self.challenge,
                    self.lagrange_coefficients[index],
                    self.commitment.public_share(index),
                ):
                    valid.append(index)
                else:
                    logger.warning(
                        "Session %s: invalid signature share from participant %d",
                        self.session_id.hex(),
                        index,
                    )
                    self.invalid_shares[index] = InvalidSignatureShare((index,))

            if len(valid) < self.threshold:
                raise ThresholdNotMet(
                    f"Need {self.threshold} valid signature shares, have {len(valid)}."
                )
            excluded = [index for index in self.signer_indexes if index not in valid]
            if excluded:
                raise InvalidSignatureShare(excluded)

            # z = ∑ z_i, z' = z + α
            z = sum(self._signature_shares[index] for index in valid) % Q
            signature = Signature(self.blinded_commitment, (z + self._blinding.alpha) % Q)
            if not verify(signature, self.public_key, self._message):
                raise VerificationFailed("Aggregated signature does not verify.")
            self.signature = signature

        logger.info("Session %s produced a signature", self.session_id.hex())
        return signature

    def close(self) -> None:
        """Wipe the session's secrets and refuse any further input."""
        with self._lock:
            if self._blinding is not None:
                self._blinding.wipe()
                self._blinding = None
            self._message = None
            self.closed = True

    def __enter__(self) -> SigningSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class Coordinator:
    """Class representing the blind signing coordinator."""

    def __init__(self, commitment: FeldmanCommitment, threshold: Optional[int] = None):
        """
        Initialize a coordinator for one group key.

        Parameters:
        commitment (FeldmanCommitment): The dealer's public commitment.
        threshold (Optional[int]): Defaults to the commitment's threshold.

        Raises:
        InvalidParameters: If the threshold disagrees with the commitment,
            or the group key is the point at infinity.
        """
        if threshold is None:
            threshold = commitment.threshold
        if threshold != commitment.threshold:
            raise InvalidParameters("Threshold must match the commitment's threshold.")
        if commitment.public_key.is_zero():
            raise InvalidParameters("Group public key must not be the point at infinity.")

        self.commitment = commitment
        self.public_key = commitment.public_key
        self.threshold = threshold
        self.faulty_participants: Set[int] = set()

    def new_session(self, message: bytes, context: bytes = b"") -> SigningSession:
        session = SigningSession(self.commitment, self.threshold, message, context)
        logger.info(
            "Session %s started for a %d-byte message",
            session.session_id.hex(),
            len(message),
        )
        return session

    def sign(self, message: bytes, signers: Iterable, context: bytes = b"") -> Signature:
        """
        Run both rounds against in-process signers and return the signature.

        Each signer exposes index, commit(session_id) and sign(request), and
        optionally abandon(session_id). A signer with an invalid nonce
        commitment is left out of the session. When a session fails on invalid
        signature shares, the faulty signers are excluded and a new session,
        with fresh nonces and blinding, is run with the rest. Every signer
        that committed is told to abandon the session once it ends, so no
        nonce outlives it.

        Raises:
        ThresholdNotMet: If fewer than threshold honest signers remain.
        """
        active = {signer.index: signer for signer in signers}
        while True:
            active = {
                index: signer
                for index, signer in active.items()
                if index not in self.faulty_participants
            }
            if len(active) < self.threshold:
                raise ThresholdNotMet(
                    f"Need {self.threshold} signers, {len(active)} remain."
                )
            with self.new_session(message, context) as session:
                try:
                    return self._run_session(session, active)
                except InvalidSignatureShare as e:
                    faulty = set(e.indexes)
                    logger.warning(
                        "Session %s: excluding participant(s) %s",
                        session.session_id.hex(),
                        sorted(faulty),
                    )
                    self.faulty_participants.update(faulty)

    def _run_session(self, session: SigningSession, signers: Dict[int, Any]) -> Signature:
        committed: List[Any] = []
        try:
            # Round 1
            for index, signer in sorted(signers.items()):
                nonce_commitment = signer.commit(session.session_id)
                committed.append(signer)
                try:
                    session.add_commitment(index, nonce_commitment)
                except InvalidParameters:
                    logger.warning(
                        "Session %s: excluding participant %d, invalid nonce commitment",
                        session.session_id.hex(),
                        index,
                    )
                    self.faulty_participants.add(index)
            requests = session.aggregate_commitments()

            # Round 2
            for index, request in requests.items():
                try:
                    share = signers[index].sign(request)
                except BlindFrostError:
                    logger.warning(
                        "Session %s: participant %d failed to sign",
                        session.session_id.hex(),
                        index,
                    )
                    session.invalid_shares[index] = InvalidSignatureShare((index,))
                    continue
                session.add_signature_share(index, share)

            return session.aggregate()
        finally:
            # Signers whose nonce was not consumed drop it with the session
            for signer in committed:
                abandon = getattr(signer, "abandon", None)
                if abandon is not None:
                    abandon(session.session_id)
