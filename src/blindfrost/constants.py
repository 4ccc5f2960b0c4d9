"""
These constants fix the group and the ciphersuite used by blind FROST. The
group is secp256k1: a curve over a finite field of prime order P, with a base
point G of prime order Q, specified by its coordinates G_x and G_y. They are
process-wide and never mutated.
"""

# secp256k1 constants for elliptic curve cryptography

# The prime modulus of the field
P: int = 2**256 - 2**32 - 977

# The order of the curve
Q: int = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# X-coordinate of the generator point G
G_x: int = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798

# Y-coordinate of the generator point G
G_y: int = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8

# Ciphersuite context string, prefixed to every domain-separated hash
CONTEXT: bytes = b"BLINDFROST-SECP256K1-SHA256-v1"

# Tag of the Schnorr challenge hash, shared by signers and verifiers
CHALLENGE_TAG: bytes = b"BlindFROST/challenge"

# Byte length of scalars and participant identifiers in transcripts
SCALAR_SIZE: int = 32

# Byte length of a SEC 1 compressed point
POINT_SIZE: int = 33
