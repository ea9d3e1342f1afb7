"""stream-merkle: Merkle roots and inclusion proofs over byte streams in O(log n) memory."""

from stream_merkle.cachedtree import CachedTree
from stream_merkle.client import VerifierClient
from stream_merkle.config import MerkleSettings, settings
from stream_merkle.digest import leaf_sum, node_sum, resolve_hash
from stream_merkle.encoding import (
    EncodingError,
    ObjectTooLarge,
    SliceTooLarge,
    decode_proof,
    encode_proof,
    read_proof_file,
    write_proof_file,
)
from stream_merkle.readers import (
    IndexNotReached,
    build_reader_proof,
    read_all,
    reader_root,
)
from stream_merkle.schemas import Proof
from stream_merkle.tree import AlreadyStarted, Forest, ForestEntry, MerkleError, Tree
from stream_merkle.verify import verify_proof

__all__ = [
    # Core
    "Tree",
    "Forest",
    "ForestEntry",
    "CachedTree",
    "Proof",
    "verify_proof",
    "leaf_sum",
    "node_sum",
    "resolve_hash",
    # Errors
    "MerkleError",
    "AlreadyStarted",
    "IndexNotReached",
    "EncodingError",
    "ObjectTooLarge",
    "SliceTooLarge",
    # Streams and persistence
    "read_all",
    "reader_root",
    "build_reader_proof",
    "encode_proof",
    "decode_proof",
    "read_proof_file",
    "write_proof_file",
    "settings",
    "MerkleSettings",
    # Remote
    "VerifierClient",
]

__version__ = "0.1.0"
