"""
This module implements the trusted-dealer side of blind FROST: Shamir secret
sharing of the group signing key, Feldman commitments that let every guardian
verify its share, Lagrange interpolation, and proactive share refresh.

The dealer draws a polynomial of degree threshold - 1 whose constant term is
the group secret, hands the evaluation at each participant index to that
participant, and publishes a commitment to every coefficient. The polynomial
itself never leaves generate_shares().

lagrange_coefficient() is the only interpolation routine in the package. The
coordinator, the participants and reconstruct_secret() all call it with the
same sorted signer set, otherwise the interpolated value is silently wrong.
"""

from __future__ import annotations
import logging
import secrets
from typing import Iterable, Iterator, Optional, Sequence, Tuple, Union
from .constants import Q, POINT_SIZE
from .errors import DuplicateParticipant, InsufficientShares, InvalidParameters
from .point import Point, G

logger = logging.getLogger(__name__)


class SecretShare:
    """
    A participant's share of the group secret, the pair (index, f(index)).

    The value is wiped with wipe() once the share is no longer needed; any
    later access raises ValueError. The repr never shows the value.
    """

    __slots__ = ("index", "_value")

    def __init__(self, index: int, value: int):
        if not _is_index(index):
            raise InvalidParameters("Share index must be a positive integer.")
        if not _is_scalar(value):
            raise InvalidParameters("Share value must be a scalar in [0, Q).")
        self.index = index
        self._value: Optional[int] = value

    @property
    def value(self) -> int:
        if self._value is None:
            raise ValueError(f"Secret share {self.index} has been wiped.")
        return self._value

    @property
    def is_wiped(self) -> bool:
        return self._value is None

    def public_share(self) -> Point:
        """Return the public verification share g^s_i."""
        return self.value * G

    def verify(self, commitment: FeldmanCommitment) -> bool:
        """Verify this share against the dealer's Feldman commitment."""
        return verify_share(self, commitment)

    def wipe(self) -> None:
        self._value = None

    def __enter__(self) -> SecretShare:
        return self

    def __exit__(self, *exc_info) -> None:
        self.wipe()

    def __repr__(self) -> str:
        state = "wiped" if self._value is None else "secret"
        return f"{self.__class__.__name__}(index={self.index}, value=<{state}>)"


class FeldmanCommitment:
    """
    Public commitment to the coefficients of the sharing polynomial,
    (g^a_0, ..., g^a_(t - 1)). The first element is the group public key.
    """

    __slots__ = ("_points",)

    def __init__(self, points: Iterable[Point]):
        points = tuple(points)
        if not points:
            raise InvalidParameters("A commitment needs at least one coefficient.")
        for point in points:
            if not isinstance(point, Point) or not point.is_on_curve():
                raise InvalidParameters("Commitments must be points on the curve.")
        self._points: Tuple[Point, ...] = points

    @property
    def threshold(self) -> int:
        return len(self._points)

    @property
    def public_key(self) -> Point:
        # Y = g^a_0
        return self._points[0]

    def public_share(self, index: int) -> Point:
        return derive_public_share(self, index)

    def combine(self, other: FeldmanCommitment) -> FeldmanCommitment:
        """
        Add two commitments coefficientwise, giving the commitment to the sum
        of the two polynomials.

        Raises:
        InvalidParameters: If the commitments have different thresholds.
        """
        if other.threshold != self.threshold:
            raise InvalidParameters("Commitments must have the same threshold.")
        return self.__class__(a + b for a, b in zip(self._points, other._points))

    def serialize(self) -> str:
        """
        Return the hex encoding of the concatenated SEC 1 compressed points.

        Raises:
        ValueError: If a coefficient commitment is the point at infinity.
        """
        return b"".join(point.sec_serialize() for point in self._points).hex()

    @classmethod
    def deserialize(cls, data: Union[bytes, str]) -> FeldmanCommitment:
        try:
            raw = bytes.fromhex(data) if isinstance(data, str) else bytes(data)
        except ValueError as e:
            raise InvalidParameters("Invalid hex input for a commitment.") from e
        if not raw or len(raw) % POINT_SIZE:
            raise InvalidParameters(
                f"Commitment length must be a positive multiple of {POINT_SIZE} bytes."
            )
        try:
            points = [
                Point.sec_deserialize(raw[i : i + POINT_SIZE])
                for i in range(0, len(raw), POINT_SIZE)
            ]
        except ValueError as e:
            raise InvalidParameters("Commitment contains an invalid point.") from e
        return cls(points)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self._points)

    def __getitem__(self, k: int) -> Point:
        return self._points[k]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeldmanCommitment):
            return NotImplemented
        return self._points == other._points

    def __hash__(self) -> int:
        return hash(self._points)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(threshold={self.threshold})"


def _is_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 < value < Q


def _is_scalar(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < Q


def evaluate_polynomial(coefficients: Sequence[int], x: int) -> int:
    """
    Evaluate the polynomial at x using Horner's method.

    Parameters:
    coefficients (Sequence[int]): Coefficients, constant term first.
    x (int): The point at which the polynomial is evaluated.

    Returns:
    int: The value of the polynomial at x, reduced modulo Q.
    """
    y = 0
    for coefficient in reversed(coefficients):
        y = (y * x + coefficient) % Q
    return y


def _check_parameters(participants: int, threshold: int) -> None:
    if not all(
        isinstance(arg, int) and not isinstance(arg, bool)
        for arg in (participants, threshold)
    ):
        raise InvalidParameters("Participants and threshold must be integers.")
    if threshold < 1:
        raise InvalidParameters("Threshold must be at least 1.")
    if threshold > participants:
        raise InvalidParameters(
            f"Threshold ({threshold}) cannot exceed participants ({participants})."
        )


def generate_shares(
    participants: int, threshold: int, secret: Optional[int] = None
) -> Tuple[Tuple[SecretShare, ...], FeldmanCommitment]:
    """
    Split a secret into Shamir shares with a Feldman commitment.

    Parameters:
    participants (int): The number of shares n to produce, for indexes 1..n.
    threshold (int): The number of shares t needed to reconstruct.
    secret (Optional[int]): The nonzero group secret. A random one is drawn
        when omitted, yielding a fresh random group key.

    Returns:
    Tuple[Tuple[SecretShare, ...], FeldmanCommitment]: The shares ordered by
    index, and the public commitment to the polynomial.

    Raises:
    InvalidParameters: If t > n, t < 1, or the secret is not a nonzero scalar.
    """
    _check_parameters(participants, threshold)
    if secret is None:
        secret = 0
        while secret == 0:
            secret = secrets.randbits(256) % Q
    elif not _is_scalar(secret) or secret == 0:
        # A zero secret commits to the point at infinity as the group key
        raise InvalidParameters("Secret must be a nonzero scalar in [1, Q).")

    # (a_0, ..., a_(t - 1)), a_0 = s
    coefficients = (secret,) + tuple(
        secrets.randbits(256) % Q for _ in range(threshold - 1)
    )
    try:
        # 𝜙_k = g^a_k, 0 ≤ k ≤ t - 1
        commitment = FeldmanCommitment(coefficient * G for coefficient in coefficients)
        # s_i = f(i), 1 ≤ i ≤ n
        shares = tuple(
            SecretShare(index, evaluate_polynomial(coefficients, index))
            for index in range(1, participants + 1)
        )
    finally:
        del coefficients

    logger.info("Generated %d-of-%d secret shares", threshold, participants)
    return shares, commitment


def derive_public_share(commitment: FeldmanCommitment, index: int) -> Point:
    """
    Compute the public verification share of any participant from the
    coefficient commitments, ∑ 𝜙_k * index^k, 0 ≤ k ≤ t - 1.

    Raises:
    InvalidParameters: If index is not a positive integer.
    """
    if not _is_index(index):
        raise InvalidParameters("Participant index must be a positive integer.")

    expected = Point()  # Point at infinity
    power = 1
    for coefficient_commitment in commitment:
        expected += power * coefficient_commitment
        power = (power * index) % Q
    return expected


def verify_share(share: SecretShare, commitment: FeldmanCommitment) -> bool:
    """
    Verify that a share matches the expected value derived from the dealer's
    commitment, g^s_i ≟ ∑ 𝜙_k * i^k.

    Returns:
    bool: True if the share is valid, False otherwise, including for shares
    that are wiped or structurally malformed.
    """
    if not isinstance(share, SecretShare) or share.is_wiped:
        return False
    if not _is_index(share.index) or not _is_scalar(share.value):
        return False
    return share.value * G == derive_public_share(commitment, share.index)


def lagrange_coefficient(
    participant_indexes: Sequence[int], index: int, x: int = 0
) -> int:
    """
    Calculate the Lagrange coefficient of index relative to a signer set.

    Parameters:
    participant_indexes (Sequence[int]): All indexes of the set, index included.
    index (int): The index whose coefficient is calculated.
    x (int, optional): The evaluation point, 0 for the constant term.

    Returns:
    int: λ_i(x) = ∏ (x - j)/(i - j), j ∈ S, j ≠ i.

    Raises:
    DuplicateParticipant: If an index appears twice.
    InvalidParameters: If index is not in the set or an index is invalid.
    """
    seen = set()
    for participant_index in participant_indexes:
        if not _is_index(participant_index):
            raise InvalidParameters("Participant indexes must be positive integers.")
        if participant_index in seen:
            raise DuplicateParticipant(participant_index)
        seen.add(participant_index)
    if index not in seen:
        raise InvalidParameters(f"Participant {index} is not in the signer set.")

    numerator = 1
    denominator = 1
    for participant_index in participant_indexes:
        if participant_index == index:
            continue
        numerator = numerator * (x - participant_index) % Q
        denominator = denominator * (index - participant_index) % Q
    return (numerator * pow(denominator, Q - 2, Q)) % Q


def reconstruct_secret(shares: Sequence[SecretShare], threshold: int) -> int:
    """
    Reconstruct the group secret from at least threshold shares.

    Every share given takes part in the interpolation.

    Raises:
    DuplicateParticipant: If two shares carry the same index.
    InsufficientShares: If fewer than threshold shares are given.
    """
    indexes = tuple(share.index for share in shares)
    seen = set()
    for index in indexes:
        if index in seen:
            raise DuplicateParticipant(index)
        seen.add(index)
    if len(indexes) < threshold:
        raise InsufficientShares(
            f"Expected at least {threshold} shares, received {len(indexes)}."
        )

    # s = ∑ λ_i * s_i
    secret = 0
    for share in shares:
        secret = (secret + lagrange_coefficient(indexes, share.index) * share.value) % Q
    return secret


def refresh_shares(
    shares: Sequence[SecretShare], threshold: int
) -> Tuple[Tuple[SecretShare, ...], FeldmanCommitment]:
    """
    Proactively refresh shares without changing the group secret.

    A polynomial with a zero constant term is drawn, and its evaluation at
    each index is added to that index's share. The returned commitment is the
    commitment to the refresh polynomial; combine it with the current one to
    obtain the commitment that verifies the new shares. The old shares are
    left untouched for the caller to wipe.

    Raises:
    InvalidParameters: If threshold is out of range for the given shares.
    DuplicateParticipant: If two shares carry the same index.
    """
    _check_parameters(len(shares), threshold)
    seen = set()
    for share in shares:
        if share.index in seen:
            raise DuplicateParticipant(share.index)
        seen.add(share.index)

    # (0, a_1, ..., a_(t - 1))
    coefficients = (0,) + tuple(
        secrets.randbits(256) % Q for _ in range(threshold - 1)
    )
    refresh_commitment = FeldmanCommitment(
        coefficient * G for coefficient in coefficients
    )
    refreshed = tuple(
        SecretShare(
            share.index,
            (share.value + evaluate_polynomial(coefficients, share.index)) % Q,
        )
        for share in shares
    )
    del coefficients

    logger.info("Refreshed %d secret shares", len(refreshed))
    return refreshed, refresh_commitment
