"""CLI entrypoint for stream-merkle.

Usage:
    stream-merkle root FILE                         # Print the Merkle root of FILE
    stream-merkle prove FILE --index N --out PROOF  # Write the proof for segment N
    stream-merkle verify PROOF                      # Check a proof file
    stream-merkle serve                             # Start the verification service
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from stream_merkle import __version__
from stream_merkle.config import settings
from stream_merkle.digest import resolve_hash
from stream_merkle.encoding import EncodingError, read_proof_file, write_proof_file
from stream_merkle.readers import IndexNotReached, build_reader_proof, reader_root
from stream_merkle.verify import verify_proof

logger = logging.getLogger("stream_merkle")


def _cmd_root(args: argparse.Namespace) -> int:
    hash_factory = resolve_hash(args.hash)
    with open(args.file, "rb") as fh:
        root = reader_root(fh, hash_factory, args.segment_size)
    print(root.hex())
    return 0


def _cmd_prove(args: argparse.Namespace) -> int:
    hash_factory = resolve_hash(args.hash)
    try:
        with open(args.file, "rb") as fh:
            proof = build_reader_proof(fh, hash_factory, args.segment_size, args.index)
    except IndexNotReached as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if args.out:
        write_proof_file(args.out, proof)
        logger.info("Proof for segment %d written to %s", args.index, args.out)
    else:
        print(json.dumps(proof.model_dump(mode="json"), indent=2))
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    hash_factory = resolve_hash(args.hash)
    try:
        proof = read_proof_file(args.proof)
    except EncodingError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if verify_proof(hash_factory, proof.root, proof.path, proof.target_index, proof.leaf_count):
        print(f"OK: leaf {proof.target_index} of {proof.leaf_count} is in {proof.root.hex()}")
        return 0
    print(f"FAIL: proof for leaf {proof.target_index} does not match root", file=sys.stderr)
    return 1


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    print(f"stream-merkle v{__version__}")
    print(f"   Hash:      {settings.hash_algorithm}")
    print(f"   Segment:   {settings.segment_size} bytes")
    print(f"   Listening: http://{args.host}:{args.port}")
    print()

    uvicorn.run(
        "stream_merkle.service:app",
        host=args.host,
        port=args.port,
        log_level="info",
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stream-merkle", description="Streaming Merkle trees")
    parser.add_argument(
        "--hash",
        default=settings.hash_algorithm,
        help=f"hashlib algorithm (default: {settings.hash_algorithm})",
    )
    parser.add_argument(
        "--segment-size",
        type=int,
        default=settings.segment_size,
        help=f"Bytes per leaf segment (default: {settings.segment_size})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_root = sub.add_parser("root", help="Print the Merkle root of a file")
    p_root.add_argument("file")
    p_root.set_defaults(func=_cmd_root)

    p_prove = sub.add_parser("prove", help="Build the inclusion proof for one segment")
    p_prove.add_argument("file")
    p_prove.add_argument("--index", type=int, required=True, help="Segment index to prove")
    p_prove.add_argument("--out", help="Write the binary proof here instead of printing JSON")
    p_prove.set_defaults(func=_cmd_prove)

    p_verify = sub.add_parser("verify", help="Verify a binary proof file")
    p_verify.add_argument("proof")
    p_verify.set_defaults(func=_cmd_verify)

    p_serve = sub.add_parser("serve", help="Run the HTTP verification service")
    p_serve.add_argument(
        "--host",
        default=settings.host,
        help=f"Listen host (default: {settings.host})",
    )
    p_serve.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Listen port (default: {settings.port})",
    )
    p_serve.set_defaults(func=_cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    args = build_parser().parse_args(argv)
    if args.segment_size <= 0:
        print("ERROR: --segment-size must be positive", file=sys.stderr)
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
