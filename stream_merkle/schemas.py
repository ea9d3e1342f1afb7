"""Pydantic models for proofs and the verification service.

Digests are ``bytes`` in Python and lowercase hex in JSON, so a proof
dumped with ``model_dump(mode="json")`` can be posted to any verifier
and validated back into the same model.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_serializer, field_validator


def _from_hex(value: object) -> object:
    if isinstance(value, str):
        return bytes.fromhex(value)
    return value


# ---------------------------------------------------------------------------
# Proof
# ---------------------------------------------------------------------------


class Proof(BaseModel):
    """Self-contained inclusion proof for one leaf.

    ``path[0]`` is the leaf value itself, followed by sibling digests from
    the leaf upward. An empty path means no proof is available: either
    nothing was appended or the target leaf was never reached.
    """

    root: bytes = Field(..., description="Merkle root the proof resolves to")
    path: list[bytes] = Field(
        default_factory=list, description="Leaf value followed by sibling digests, lowest first"
    )
    target_index: int = Field(..., ge=0, description="Index of the proven leaf")
    leaf_count: int = Field(..., ge=0, description="Number of leaves in the tree")

    @property
    def available(self) -> bool:
        return bool(self.path)

    @field_validator("root", mode="before")
    @classmethod
    def _root_from_hex(cls, value: object) -> object:
        return _from_hex(value)

    @field_validator("path", mode="before")
    @classmethod
    def _path_from_hex(cls, value: object) -> object:
        if isinstance(value, list):
            return [_from_hex(item) for item in value]
        return value

    @field_serializer("root", when_used="json")
    def _root_to_hex(self, value: bytes) -> str:
        return value.hex()

    @field_serializer("path", when_used="json")
    def _path_to_hex(self, value: list[bytes]) -> list[str]:
        return [item.hex() for item in value]


# ---------------------------------------------------------------------------
# Service responses
# ---------------------------------------------------------------------------


class RootResponse(BaseModel):
    root: str = Field(..., description="Hex-encoded Merkle root (empty for no data)")
    leaf_count: int
    segment_size: int
    hash_algorithm: str


class VerifyResponse(BaseModel):
    valid: bool
    target_index: int
    leaf_count: int
