"""Tests for the IPFS content store over a mocked HTTP transport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from dapplib.config import IpfsConfig
from dapplib.dispatch import ipfs_upload
from dapplib.errors import GatewayError
from dapplib.store.ipfs import AddedEntry, IpfsStore, UploadFile

IPFS = IpfsConfig(host="ipfs.test", protocol="http", port=5001)
CID_A = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
CID_DIR = "QmUNLLsPACCz1vLxQVkXqqLX5R1X345qqfHbsf67hvA3Nn"


def _ndjson(*lines: dict[str, Any]) -> bytes:
    return "\n".join(json.dumps(line) for line in lines).encode() + b"\n"


class AddEndpoint:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


async def _collect(store: IpfsStore, files: list[UploadFile], **kwargs: Any) -> list[AddedEntry]:
    return [entry async for entry in store.add(files, **kwargs)]


class TestAdd:
    @pytest.mark.asyncio
    async def test_streams_entries_and_progress(self) -> None:
        endpoint = AddEndpoint(
            httpx.Response(
                200,
                content=_ndjson(
                    {"Name": "a.md", "Bytes": 4},
                    {"Name": "a.md", "Hash": CID_A, "Size": "12"},
                    {"Name": "", "Hash": CID_DIR, "Size": "70"},
                ),
            )
        )
        store = IpfsStore(IPFS, transport=httpx.MockTransport(endpoint))
        progress: list[tuple[int, str]] = []

        entries = await _collect(
            store,
            [UploadFile("a.md", b"vote")],
            wrap_with_directory=True,
            progress=lambda sent, path: progress.append((sent, path)),
        )

        assert entries == [AddedEntry("a.md", CID_A, 12), AddedEntry("", CID_DIR, 70)]
        assert progress == [(4, "a.md")]
        request = endpoint.requests[0]
        assert request.url.path == "/api/v0/add"
        assert request.url.host == "ipfs.test"
        assert request.url.params["pin"] == "true"
        assert request.url.params["wrap-with-directory"] == "true"
        assert request.url.params["progress"] == "true"
        assert b"vote" in request.content
        assert b'filename="a.md"' in request.content

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        store = IpfsStore(IPFS, transport=httpx.MockTransport(AddEndpoint(httpx.Response(500, text="node down"))))
        with pytest.raises(GatewayError, match="node down"):
            await _collect(store, [UploadFile("a.md", b"a")])

    @pytest.mark.asyncio
    async def test_error_line(self) -> None:
        body = _ndjson({"Message": "pin failed", "Code": 0, "Type": "error"})
        store = IpfsStore(IPFS, transport=httpx.MockTransport(AddEndpoint(httpx.Response(200, content=body))))
        with pytest.raises(GatewayError, match="pin failed"):
            await _collect(store, [UploadFile("a.md", b"a")])

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = IpfsStore(IPFS, transport=httpx.MockTransport(refuse))
        with pytest.raises(GatewayError):
            await _collect(store, [UploadFile("a.md", b"a")])


class TestUploadThroughStore:
    @pytest.mark.asyncio
    async def test_wrapped_upload_drops_directory(self) -> None:
        endpoint = AddEndpoint(
            httpx.Response(
                200,
                content=_ndjson({"Name": "a.md", "Hash": CID_A, "Size": "12"}, {"Name": "", "Hash": CID_DIR, "Size": "70"}),
            )
        )
        store = IpfsStore(IPFS, transport=httpx.MockTransport(endpoint))
        results = await ipfs_upload(store, [UploadFile("a.md", b"vote")], True)

        assert [r.cid for r in results] == [CID_A]
        assert results[0].multihash.hash_function == 0x12
        assert results[0].multihash.digest_length == 0x20
        assert len(results[0].multihash.digest) == 64

    @pytest.mark.asyncio
    async def test_empty_upload_makes_no_request(self) -> None:
        endpoint = AddEndpoint(httpx.Response(200, content=b""))
        store = IpfsStore(IPFS, transport=httpx.MockTransport(endpoint))
        assert await ipfs_upload(store, [], True) == []
        assert endpoint.requests == []


def test_upload_file_from_path(tmp_path) -> None:
    path = tmp_path / "proposal.md"
    path.write_bytes(b"# Proposal")
    assert UploadFile.from_path(path) == UploadFile("proposal.md", b"# Proposal")


class TestTimeouts:
    @pytest.mark.asyncio
    async def test_client_uses_configured_timeout(self) -> None:
        endpoint = AddEndpoint(httpx.Response(200, content=_ndjson({"Name": "a.md", "Hash": CID_A, "Size": "4"})))
        config = IpfsConfig(host="ipfs.test", protocol="http", port=5001, timeout=7.5)
        store = IpfsStore(config, transport=httpx.MockTransport(endpoint))

        await _collect(store, [UploadFile("a.md", b"vote")])

        assert endpoint.requests[0].extensions["timeout"]["read"] == 7.5

    @pytest.mark.asyncio
    async def test_read_timeout_is_gateway_error(self) -> None:
        def stall(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        store = IpfsStore(IPFS, transport=httpx.MockTransport(stall))
        with pytest.raises(GatewayError, match="timed out"):
            await _collect(store, [UploadFile("a.md", b"vote")])
