"""Configuration for stream-merkle.

All settings are driven by environment variables with sensible defaults.
The core tree and verifier take every parameter explicitly; these values
only seed the CLI, the verification service and the stream readers.
"""

from __future__ import annotations

import os


def _get_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return int(val)


def _get_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return val.strip().lower() in {"1", "true", "yes", "y", "on"}


class MerkleSettings:
    # --- Hashing ---
    # Any algorithm name accepted by hashlib.new (sha256, sha512, blake2b, ...).
    hash_algorithm: str = os.getenv("MERKLE_HASH_ALGORITHM", "sha256")

    # --- Segmenting ---
    # Bytes per leaf when a byte stream is split into segments.
    segment_size: int = _get_int("MERKLE_SEGMENT_SIZE", 64)

    # --- Verification service ---
    host: str = os.getenv("MERKLE_HOST", "127.0.0.1")
    port: int = _get_int("MERKLE_PORT", 3200)
    # Hard cap on uploaded bodies for /root and /proof.
    max_request_body_bytes: int = _get_int("MERKLE_MAX_REQUEST_BODY_BYTES", 64 * 1024 * 1024)
    # Include the full proof path in service logs (debug aid, noisy).
    log_proof_paths: bool = _get_bool("MERKLE_LOG_PROOF_PATHS", False)

    # --- Binary codec limits ---
    # Maximum bytes consumed while decoding a single object.
    max_object_size: int = _get_int("MERKLE_MAX_OBJECT_SIZE", 12_000_000)
    # Maximum bytes in a single length-prefixed field or digest list.
    max_slice_size: int = _get_int("MERKLE_MAX_SLICE_SIZE", 5_000_000)

    # --- Logging ---
    log_level: str = os.getenv("MERKLE_LOG_LEVEL", "INFO")


settings = MerkleSettings()
