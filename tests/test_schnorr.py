import unittest

import secrets
from hashlib import sha256
from blindfrost import Point, Signature, Q, G, verify
from blindfrost.hashes import H1, H2, H3, H4, H5, encode_scalar, hash_to_scalar
from blindfrost.schnorr import challenge_hash, sign


class HashTests(unittest.TestCase):
    def test_domain_separation(self):
        data = b"transcript"
        digests = {H1(data), H2(data), H3(data), H4(data), H5(data)}
        self.assertEqual(len(digests), 5)
        for digest in digests:
            self.assertEqual(len(digest), 32)

    def test_challenge_is_tagged(self):
        tag_hash = sha256(b"BlindFROST/challenge").digest()
        self.assertEqual(H2(b"m"), sha256(tag_hash + tag_hash + b"m").digest())

    def test_encode_scalar(self):
        self.assertEqual(encode_scalar(1), b"\x00" * 31 + b"\x01")
        self.assertEqual(len(encode_scalar(Q - 1)), 32)
        with self.assertRaises(ValueError):
            encode_scalar(-1)
        with self.assertRaises(ValueError):
            encode_scalar(2**256)

    def test_hash_to_scalar(self):
        self.assertEqual(hash_to_scalar(b"\xff" * 32), (2**256 - 1) % Q)
        self.assertLess(hash_to_scalar(H1(b"x")), Q)


class Tests(unittest.TestCase):
    def setUp(self):
        self.secret = secrets.randbits(256) % (Q - 1) + 1
        self.public_key = self.secret * G
        self.message = b"recover wallet 0xABC"

    def test_sign_verify(self):
        signature = sign(self.secret, self.message)
        self.assertTrue(verify(signature, self.public_key, self.message))
        self.assertTrue(signature.verify(self.public_key, self.message))
        self.assertFalse(verify(signature, self.public_key, b"recover wallet 0xDEF"))
        self.assertFalse(verify(signature, 2 * self.public_key, self.message))

        # zG == R + cY
        R = signature.nonce_commitment
        c = challenge_hash(R, self.public_key, self.message)
        self.assertEqual(signature.z * G, R + c * self.public_key)

    def test_tampered_signature(self):
        signature = sign(self.secret, self.message)
        tampered = Signature(signature.nonce_commitment, signature.z ^ 1)
        self.assertFalse(verify(tampered, self.public_key, self.message))
        self.assertFalse(
            verify(Signature(-signature.nonce_commitment, signature.z), self.public_key, self.message)
        )

    def test_malformed_signature(self):
        signature = sign(self.secret, self.message)
        self.assertFalse(verify(Signature(Point(), signature.z), self.public_key, self.message))
        self.assertFalse(verify(Signature(signature.nonce_commitment, Q), self.public_key, self.message))
        self.assertFalse(verify(signature, Point(), self.message))
        self.assertFalse(verify("signature", self.public_key, self.message))

    def test_serialization(self):
        signature = sign(self.secret, self.message)
        encoded = signature.serialize()
        self.assertEqual(len(encoded), 65)
        self.assertEqual(Signature.deserialize(encoded), signature)
        self.assertEqual(Signature.deserialize(signature.hex()), signature)

        with self.assertRaises(ValueError):
            Signature.deserialize(encoded[:-1])
        with self.assertRaises(ValueError):
            Signature.deserialize("not hex")
        with self.assertRaises(ValueError):
            Signature.deserialize(encoded[:33] + Q.to_bytes(32, "big"))

    def test_sign_rejects_bad_secret(self):
        with self.assertRaises(ValueError):
            sign(0, self.message)
        with self.assertRaises(ValueError):
            sign(Q, self.message)


if __name__ == "__main__":
    unittest.main()
