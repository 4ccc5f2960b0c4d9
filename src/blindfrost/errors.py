"""
Exception classes raised by blind FROST.

Each error derives from BlindFrostError, so callers can discriminate failures
of this package from those raised by other code, and from the builtin
ValueError or RuntimeError that matches its nature, so callers that only care
about the builtin kinds keep working.

Every cryptographic failure is terminal for the signing session it occurs in;
the caller may only start a new session with fresh nonces and blinding.
"""

from typing import Iterable, Tuple


class BlindFrostError(Exception):
    """Base class of every error raised by this package."""


class InvalidParameters(BlindFrostError, ValueError):
    """Invalid threshold, participant count, identifier or scalar."""


class InsufficientShares(BlindFrostError, ValueError):
    """Fewer than threshold shares were supplied for reconstruction."""


class ThresholdNotMet(BlindFrostError, RuntimeError):
    """Fewer than threshold valid contributions remain in a signing session."""


class DuplicateParticipant(BlindFrostError, ValueError):
    """The same participant identifier appears twice in a quorum."""

    def __init__(self, index: int):
        super().__init__(f"Participant {index} appears more than once.")
        self.index = index


class InvalidSignatureShare(BlindFrostError, ValueError):
    """
    One or more signature shares failed their public verification equation.

    Only the identifiers of the faulty participants are reported.
    """

    def __init__(self, indexes: Iterable[int]):
        self.indexes: Tuple[int, ...] = tuple(sorted(indexes))
        super().__init__(
            "Invalid signature share from participant(s) "
            + ", ".join(str(index) for index in self.indexes)
            + "."
        )


class StaleNonce(BlindFrostError, RuntimeError):
    """Signing was attempted without a fresh, matching nonce commitment."""


class NonceAlreadyUsed(StaleNonce):
    """A nonce pair was consumed a second time."""


class VerificationFailed(BlindFrostError, RuntimeError):
    """The final signature does not satisfy the Schnorr equation."""


class SessionStateError(BlindFrostError, RuntimeError):
    """A round input arrived out of order, or the session is closed."""
