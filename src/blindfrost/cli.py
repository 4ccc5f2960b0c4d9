"""
Command line driver that demonstrates blind FROST end to end and verifies
signatures. It plays every role in one process; it is an example, not a
transport.
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from .coordinator import Coordinator
from .errors import BlindFrostError
from .participant import Participant
from .point import Point
from .schnorr import Signature, verify as verify_signature
from .sharing import generate_shares

logger = logging.getLogger(__name__)


def _parse_signers(value: str) -> Tuple[int, ...]:
    try:
        return tuple(int(index) for index in value.split(","))
    except ValueError as e:
        raise argparse.ArgumentTypeError(
            "Signers must be a comma separated list of integers."
        ) from e


def demo(args) -> int:
    shares, commitment = generate_shares(args.participants, args.threshold)
    participants = {share.index: Participant(share, commitment) for share in shares}
    signer_indexes = args.signers or tuple(range(1, args.threshold + 1))
    unknown = [index for index in signer_indexes if index not in participants]
    if unknown:
        print(f"Unknown signer(s): {unknown}", file=sys.stderr)
        return 2

    message = args.message.encode()
    coordinator = Coordinator(commitment)
    signature = coordinator.sign(
        message, [participants[index] for index in signer_indexes]
    )

    for participant in participants.values():
        participant.decommission()

    print(f"public key: {commitment.public_key.sec_serialize().hex()}")
    print(f"signature:  {signature.hex()}")
    print("valid" if verify_signature(signature, commitment.public_key, message) else "invalid")
    return 0


def verify(args) -> int:
    try:
        public_key = Point.sec_deserialize(args.public_key)
        signature = Signature.deserialize(args.signature)
    except ValueError as e:
        print(f"invalid: {e}", file=sys.stderr)
        return 1

    if verify_signature(signature, public_key, args.message.encode()):
        print("valid")
        return 0
    print("invalid")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="blindfrost")
    parser.add_argument(
        "--verbose", action="store_true", help="Log protocol progress to stderr."
    )
    subparsers = parser.add_subparsers()

    parser_demo = subparsers.add_parser(
        "demo", help="Deal a key, run a blind signing session, verify the result."
    )
    parser_demo.add_argument(
        "--participants", type=int, default=5, help="Number of guardians."
    )
    parser_demo.add_argument(
        "--threshold", type=int, default=3, help="Guardians needed to sign."
    )
    parser_demo.add_argument(
        "--signers",
        type=_parse_signers,
        default=None,
        help="Comma separated guardian indexes, e.g. 1,3,4.",
    )
    parser_demo.add_argument(
        "--message", type=str, required=True, help="Message to sign."
    )
    parser_demo.set_defaults(func=demo)

    parser_verify = subparsers.add_parser("verify", help="Verify a signature.")
    parser_verify.add_argument(
        "--public-key", type=str, required=True, help="Compressed public key, hex."
    )
    parser_verify.add_argument(
        "--signature", type=str, required=True, help="Signature, hex."
    )
    parser_verify.add_argument(
        "--message", type=str, required=True, help="Message to verify."
    )
    parser_verify.set_defaults(func=verify)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return 2
    try:
        return args.func(args)
    except BlindFrostError as e:
        logger.error("%s", e)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
