"""
Copyright (c) 2021-2024 Jesse Posner

Distributed under the MIT software license, see the accompanying file LICENSE
or http://www.opensource.org/licenses/mit-license.php.

This code is currently a work in progress. It's not secure nor stable.  IT IS
EXTREMELY DANGEROUS AND RECKLESS TO USE THIS MODULE IN PRODUCTION!

This package implements blind FROST, a threshold Schnorr signature scheme in
which a group of guardians authorizes an action, such as a wallet recovery,
without learning the message they sign.

Modules:
- point: Defines the Point class for handling points on an elliptic curve.
- sharing: Shamir secret sharing with Feldman commitments, Lagrange
  interpolation and share refresh, run by a trusted dealer.
- participant: Contains the Participant class, which commits to nonces and
  produces signature shares over a blinded challenge.
- coordinator: Implements the Coordinator and its signing sessions, which
  blind the challenge and unblind the aggregated signature.
- schnorr: Plain Schnorr signatures and their verification.
- hashes: The domain-separated hash functions of the ciphersuite.
- errors: The exception classes raised by the package.
- constants: Holds cryptographic constants like P, Q, and G, crucial for
  elliptic curve operations.
"""

from .constants import P, Q
from .point import Point, G
from .errors import (
    BlindFrostError,
    InvalidParameters,
    InsufficientShares,
    ThresholdNotMet,
    DuplicateParticipant,
    InvalidSignatureShare,
    StaleNonce,
    NonceAlreadyUsed,
    VerificationFailed,
    SessionStateError,
)
from .sharing import (
    SecretShare,
    FeldmanCommitment,
    generate_shares,
    verify_share,
    reconstruct_secret,
    lagrange_coefficient,
    derive_public_share,
    refresh_shares,
)
from .schnorr import Signature, verify
from .coordinator import Coordinator, SigningSession, NonceCommitment, SigningRequest
from .participant import Participant, NoncePair
