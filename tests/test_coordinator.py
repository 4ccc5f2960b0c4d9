import unittest

import secrets
from blindfrost import (
    Coordinator,
    DuplicateParticipant,
    FeldmanCommitment,
    InvalidParameters,
    InvalidSignatureShare,
    Participant,
    Point,
    SessionStateError,
    Signature,
    ThresholdNotMet,
    Q,
    G,
    generate_shares,
    reconstruct_secret,
    verify,
)
from blindfrost.coordinator import (
    BlindingFactors,
    NonceCommitment,
    compute_binding_factors,
    compute_group_commitment,
)
from blindfrost.schnorr import challenge_hash


class TamperingParticipant(Participant):
    """Flips one bit of every signature share it produces."""

    def sign(self, request):
        return super().sign(request) ^ 1


class BadCommitParticipant(Participant):
    """Commits to a real nonce pair but announces an invalid binding point."""

    def commit(self, session_id):
        hiding, _ = super().commit(session_id)
        return NonceCommitment(hiding, Point())


class Tests(unittest.TestCase):
    def setUp(self):
        self.secret = secrets.randbits(256) % (Q - 1) + 1
        self.shares, self.commitment = generate_shares(5, 3, self.secret)
        self.public_key = self.commitment.public_key
        self.participants = {
            share.index: Participant(share, self.commitment) for share in self.shares
        }
        self.coordinator = Coordinator(self.commitment)

    def _run(self, session, indexes, tamper=()):
        for index in indexes:
            session.add_commitment(
                index, self.participants[index].commit(session.session_id)
            )
        requests = session.aggregate_commitments()
        for index, request in requests.items():
            share = self.participants[index].sign(request)
            if index in tamper:
                share ^= 1
            session.add_signature_share(index, share)
        return session.aggregate()

    def test_recover_wallet_scenario(self):
        message = b"recover wallet 0xABC"
        with self.coordinator.new_session(message) as session:
            signature = self._run(session, (1, 3, 4))
            self.assertEqual(session.signer_indexes, (1, 3, 4))

        self.assertTrue(verify(signature, self.public_key, message))
        self.assertFalse(verify(signature, self.public_key, b"recover wallet 0xDEF"))
        self.assertEqual(self.public_key, self.secret * G)

        # The signature survives serialization like any Schnorr signature
        decoded = Signature.deserialize(signature.hex())
        self.assertTrue(verify(decoded, self.public_key, message))

    def test_every_signer_subset(self):
        message = b"fnord!"
        for indexes in ((1, 2, 3), (2, 4, 5), (1, 2, 3, 4, 5)):
            with self.coordinator.new_session(message) as session:
                signature = self._run(session, indexes)
            self.assertTrue(verify(signature, self.public_key, message))

    def test_unblinding_algebra(self):
        message = b"recover wallet 0xABC"
        session = self.coordinator.new_session(message)
        signature = self._run(session, (2, 3, 5))

        # R' is the blinded commitment, and participants saw c' + β, not c'
        self.assertEqual(signature.nonce_commitment, session.blinded_commitment)
        real_challenge = challenge_hash(session.blinded_commitment, self.public_key, message)
        self.assertNotEqual(session.challenge, real_challenge)

        group_commitment = compute_group_commitment(
            session._commitments, session.binding_factors, session.signer_indexes
        )
        self.assertNotEqual(group_commitment, session.blinded_commitment)
        session.close()

    def test_binding_factors(self):
        commitments = {
            index: self.participants[index].commit(b"s" * 16) for index in (1, 3, 4)
        }
        signers = (1, 3, 4)
        rho = compute_binding_factors(self.public_key, b"s" * 16, b"", commitments, signers)
        self.assertEqual(set(rho), {1, 3, 4})
        self.assertEqual(len(set(rho.values())), 3)

        # Deterministic over the public transcript
        self.assertEqual(
            rho, compute_binding_factors(self.public_key, b"s" * 16, b"", commitments, signers)
        )
        # Bound to the session and the context
        self.assertNotEqual(
            rho, compute_binding_factors(self.public_key, b"t" * 16, b"", commitments, signers)
        )
        self.assertNotEqual(
            rho, compute_binding_factors(self.public_key, b"s" * 16, b"ctx", commitments, signers)
        )

    def test_context_is_bound(self):
        message = b"recover wallet 0xABC"
        with self.coordinator.new_session(message, context=b"guardians-v1") as session:
            signature = self._run(session, (1, 2, 3))
        self.assertTrue(verify(signature, self.public_key, message))

    def test_tamper_detection(self):
        message = b"recover wallet 0xABC"
        session = self.coordinator.new_session(message)
        with self.assertRaises(InvalidSignatureShare) as cm:
            self._run(session, (1, 2, 3, 4), tamper=(3,))
        self.assertEqual(cm.exception.indexes, (3,))
        self.assertEqual(set(session.invalid_shares), {3})
        self.assertIsNone(session.signature)
        session.close()

    def test_tamper_below_threshold(self):
        session = self.coordinator.new_session(b"fnord!")
        with self.assertRaises(ThresholdNotMet):
            self._run(session, (1, 2, 3), tamper=(2,))
        self.assertEqual(set(session.invalid_shares), {2})

    def test_sign_excludes_faulty_participant(self):
        message = b"recover wallet 0xABC"
        signers = [self.participants[1], self.participants[2], self.participants[4]]
        signers.append(TamperingParticipant(self.shares[4], self.commitment))

        signature = self.coordinator.sign(message, signers)

        self.assertTrue(verify(signature, self.public_key, message))
        self.assertEqual(self.coordinator.faulty_participants, {5})

    def test_sign_fails_when_honest_set_too_small(self):
        signers = [
            self.participants[1],
            self.participants[2],
            TamperingParticipant(self.shares[2], self.commitment),
        ]
        with self.assertRaises(ThresholdNotMet):
            self.coordinator.sign(b"fnord!", signers)

    def test_sign_leaves_out_invalid_commitment(self):
        message = b"recover wallet 0xABC"
        honest = [self.participants[1], self.participants[2], self.participants[3]]
        signers = honest + [BadCommitParticipant(self.shares[3], self.commitment)]

        signature = self.coordinator.sign(message, signers)

        self.assertTrue(verify(signature, self.public_key, message))
        self.assertEqual(self.coordinator.faulty_participants, {4})
        for signer in signers:
            self.assertEqual(signer._nonces, {})

    def test_aborted_sign_wipes_pending_nonces(self):
        honest = [self.participants[1], self.participants[2]]
        signers = honest + [BadCommitParticipant(self.shares[2], self.commitment)]

        with self.assertRaises(ThresholdNotMet):
            self.coordinator.sign(b"fnord!", signers)
        for signer in signers:
            self.assertEqual(signer._nonces, {})

    def test_sign_any_threshold(self):
        rng = secrets.SystemRandom()
        shapes = [(1, 1), (2, 1), (3, 3), (4, 4), (5, 2)]
        shapes += [(n, rng.randint(1, n)) for n in (rng.randint(1, 6) for _ in range(3))]
        for participants, threshold in shapes:
            shares, commitment = generate_shares(participants, threshold)
            signers = [
                Participant(share, commitment)
                for share in rng.sample(shares, threshold)
            ]
            message = b"recover wallet 0xABC"
            signature = Coordinator(commitment).sign(message, signers)
            self.assertTrue(verify(signature, commitment.public_key, message))
            self.assertFalse(verify(signature, commitment.public_key, b"recover wallet 0xDEF"))

    def test_rejects_group_key_at_infinity(self):
        with self.assertRaises(InvalidParameters):
            Coordinator(FeldmanCommitment((Point(), G)))

    def test_request_for(self):
        session = self.coordinator.new_session(b"fnord!")
        commitments = {
            index: self.participants[index].commit(session.session_id)
            for index in (1, 2, 3)
        }
        requests = session.aggregate_commitments(commitments)
        self.assertEqual(session.request_for(2), requests[2])
        self.assertEqual(requests[2].signer_indexes, (1, 2, 3))
        with self.assertRaises(InvalidParameters):
            session.request_for(4)
        session.close()

    def test_sign_needs_threshold_signers(self):
        with self.assertRaises(ThresholdNotMet):
            self.coordinator.sign(b"fnord!", [self.participants[1], self.participants[2]])

    def test_round_one_threshold(self):
        session = self.coordinator.new_session(b"fnord!")
        session.add_commitment(1, self.participants[1].commit(session.session_id))
        session.add_commitment(2, self.participants[2].commit(session.session_id))
        with self.assertRaises(ThresholdNotMet):
            session.aggregate_commitments()

    def test_round_order(self):
        session = self.coordinator.new_session(b"fnord!")
        with self.assertRaises(SessionStateError):
            session.add_signature_share(1, 5)
        with self.assertRaises(SessionStateError):
            session.aggregate()
        with self.assertRaises(SessionStateError):
            session.request_for(1)

        commitments = {
            index: self.participants[index].commit(session.session_id)
            for index in (1, 2, 3)
        }
        session.aggregate_commitments(commitments)
        with self.assertRaises(SessionStateError):
            session.add_commitment(4, self.participants[4].commit(session.session_id))
        with self.assertRaises(SessionStateError):
            session.aggregate_commitments()
        with self.assertRaises(InvalidParameters):
            session.add_signature_share(4, 5)

        session.add_signature_share(1, 5)
        with self.assertRaises(DuplicateParticipant):
            session.add_signature_share(1, 5)

        session.close()
        with self.assertRaises(SessionStateError):
            session.aggregate()

    def test_rejects_bad_commitments(self):
        session = self.coordinator.new_session(b"fnord!")
        nonce_commitment = self.participants[1].commit(session.session_id)
        session.add_commitment(1, nonce_commitment)
        with self.assertRaises(DuplicateParticipant):
            session.add_commitment(1, nonce_commitment)
        with self.assertRaises(InvalidParameters):
            session.add_commitment(0, nonce_commitment)
        with self.assertRaises(InvalidParameters):
            session.add_commitment(2, (nonce_commitment.hiding, nonce_commitment.hiding - nonce_commitment.hiding))

    def test_close_wipes_blinding(self):
        session = self.coordinator.new_session(b"fnord!")
        self._run(session, (1, 2, 3))
        blinding = session._blinding
        session.close()
        self.assertIsNone(session._blinding)
        with self.assertRaises(ValueError):
            blinding.alpha
        self.assertNotIn(str(BlindingFactors(7, 11).beta), repr(BlindingFactors(7, 11)))

    def test_threshold_must_match(self):
        with self.assertRaises(InvalidParameters):
            Coordinator(self.commitment, threshold=2)

    def test_blindness(self):
        # Participants 1, 2, 3 keep the same nonce commitments; only the
        # session and the message change. The challenge they see must look
        # uniform and must not depend on the message.
        commitments = {
            index: self.participants[index].commit(b"fixed-nonces") for index in (1, 2, 3)
        }
        observed = {}
        for message in (b"recover wallet 0xABC", b"recover wallet 0xDEF"):
            challenges = []
            for _ in range(24):
                session = self.coordinator.new_session(message)
                session.aggregate_commitments(commitments)
                challenges.append(session.challenge)
                session.close()
            observed[message] = challenges

        everything = observed[b"recover wallet 0xABC"] + observed[b"recover wallet 0xDEF"]
        self.assertEqual(len(set(everything)), len(everything))

        def mean(values):
            return sum(value / Q for value in values) / len(values)

        self.assertLess(abs(mean(everything) - 0.5), 0.25)
        upper_half = sum(1 for value in everything if value >= Q // 2)
        self.assertTrue(10 <= upper_half <= 38)
        self.assertLess(
            abs(mean(observed[b"recover wallet 0xABC"]) - mean(observed[b"recover wallet 0xDEF"])),
            0.35,
        )

    def test_reconstructed_key_matches(self):
        self.assertEqual(reconstruct_secret(self.shares[1:4], 3), self.secret)


if __name__ == "__main__":
    unittest.main()
