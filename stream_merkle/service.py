"""HTTP verification service.

Computes roots and proofs over uploaded bodies and verifies proofs
posted by remote parties. Every request builds its own tree, so no tree
state is shared between requests; verification is stateless.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from stream_merkle import __version__
from stream_merkle.config import settings
from stream_merkle.digest import resolve_hash
from stream_merkle.schemas import Proof, RootResponse, VerifyResponse
from stream_merkle.tree import Tree
from stream_merkle.verify import verify_proof

logger = logging.getLogger(__name__)


class _BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared body exceeds the configured cap."""

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and int(content_length) > settings.max_request_body_bytes:
            logger.warning(
                "Rejected %s %s: body of %s bytes exceeds %d",
                request.method,
                request.url.path,
                content_length,
                settings.max_request_body_bytes,
            )
            return JSONResponse(
                status_code=413,
                content={"detail": "Request body too large"},
            )
        return await call_next(request)


app = FastAPI(
    title="stream-merkle",
    description="Streaming Merkle roots and inclusion proofs",
    version=__version__,
)

app.add_middleware(_BodySizeLimitMiddleware)

_hash_factory = resolve_hash(settings.hash_algorithm)


def _segment_size(requested: int | None) -> int:
    size = requested if requested is not None else settings.segment_size
    if size <= 0:
        raise HTTPException(status_code=400, detail="segment_size must be positive")
    return size


async def _ingest(request: Request, tree: Tree, segment_size: int) -> int:
    """Feed the request body into *tree* segment by segment; return bytes read.

    Chunked uploads carry no Content-Length, so the body cap is enforced
    here as well as in the middleware.
    """
    limit = settings.max_request_body_bytes
    pending = bytearray()
    total = 0
    async for chunk in request.stream():
        total += len(chunk)
        if total > limit:
            logger.warning(
                "Rejected %s %s: streamed body exceeds %d bytes",
                request.method,
                request.url.path,
                limit,
            )
            raise HTTPException(status_code=413, detail="Request body too large")
        pending += chunk
        while len(pending) >= segment_size:
            tree.append(bytes(pending[:segment_size]))
            del pending[:segment_size]
    if pending:
        tree.append(bytes(pending))
    return total


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "stream-merkle",
        "version": __version__,
        "hash_algorithm": settings.hash_algorithm,
        "segment_size": settings.segment_size,
    }


@app.post("/root", response_model=RootResponse)
async def compute_root(request: Request, segment_size: int | None = None):
    """Return the Merkle root of the raw request body."""
    size = _segment_size(segment_size)
    tree = Tree(_hash_factory)
    total = await _ingest(request, tree, size)
    logger.info("Computed root over %d byte(s) in %d leaves", total, tree.leaf_count)

    return RootResponse(
        root=tree.root().hex(),
        leaf_count=tree.leaf_count,
        segment_size=size,
        hash_algorithm=settings.hash_algorithm,
    )


@app.post("/proof")
async def compute_proof(request: Request, index: int, segment_size: int | None = None):
    """Return the inclusion proof for segment *index* of the request body."""
    size = _segment_size(segment_size)
    if index < 0:
        raise HTTPException(status_code=400, detail="index must be non-negative")
    tree = Tree(_hash_factory)
    tree.set_index(index)
    await _ingest(request, tree, size)
    proof = tree.prove()
    if not proof.available:
        raise HTTPException(
            status_code=404,
            detail=f"index {index} not reached ({tree.leaf_count} leaves)",
        )

    if settings.log_proof_paths:
        logger.info("Proof for leaf %d: %s", index, [p.hex() for p in proof.path])
    return proof.model_dump(mode="json")


@app.post("/verify", response_model=VerifyResponse)
def verify(proof: Proof):
    """Check a posted proof against its own root."""
    valid = verify_proof(
        _hash_factory,
        proof.root,
        proof.path,
        proof.target_index,
        proof.leaf_count,
    )
    logger.info(
        "Verified proof for leaf %d of %d: %s",
        proof.target_index,
        proof.leaf_count,
        "valid" if valid else "INVALID",
    )
    return VerifyResponse(
        valid=valid,
        target_index=proof.target_index,
        leaf_count=proof.leaf_count,
    )
