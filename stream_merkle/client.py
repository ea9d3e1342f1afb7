"""Client for a remote stream-merkle verification service.

Lets a party that holds only a proof (no data, no tree) ask a trusted
verifier to check it, or have the service compute a root over a blob.
"""

from __future__ import annotations

import logging

import httpx

from stream_merkle.schemas import Proof, RootResponse, VerifyResponse

logger = logging.getLogger(__name__)


class VerifierClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _url(self, path: str) -> str:
        return self._base_url + "/" + path.lstrip("/")

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout, transport=self._transport)

    def health(self) -> dict:
        with self._client() as client:
            resp = client.get(self._url("health"))
            resp.raise_for_status()
            return resp.json()

    def verify(self, proof: Proof) -> bool:
        """Post *proof* to the service and return its verdict.

        HTTP failures raise ``httpx.HTTPStatusError``; only a completed
        verification returns a bool.
        """
        with self._client() as client:
            resp = client.post(self._url("verify"), json=proof.model_dump(mode="json"))
            resp.raise_for_status()
            result = VerifyResponse(**resp.json())
        if not result.valid:
            logger.warning(
                "Remote verifier rejected proof for leaf %d of %d",
                proof.target_index,
                proof.leaf_count,
            )
        return result.valid

    def root_of(self, data: bytes, segment_size: int | None = None) -> bytes:
        params = {"segment_size": segment_size} if segment_size is not None else None
        with self._client() as client:
            resp = client.post(self._url("root"), content=data, params=params)
            resp.raise_for_status()
            result = RootResponse(**resp.json())
        return bytes.fromhex(result.root)

    def proof_of(self, data: bytes, index: int, segment_size: int | None = None) -> Proof:
        params: dict[str, int] = {"index": index}
        if segment_size is not None:
            params["segment_size"] = segment_size
        with self._client() as client:
            resp = client.post(self._url("proof"), content=data, params=params)
            resp.raise_for_status()
            return Proof(**resp.json())
