"""
IPFS Content Store Gateway.

Uploads go through the IPFS HTTP API ``/api/v0/add`` endpoint.  The node
answers with newline-delimited JSON: progress lines (``{"Name", "Bytes"}``)
interleaved with one entry per stored object (``{"Name", "Hash", "Size"}``),
in the order the node finishes them.
"""

from __future__ import annotations

import inspect
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol, Sequence, Union

import httpx
import structlog

from ..config import IpfsConfig
from ..errors import GatewayError

logger = structlog.get_logger()

# progress(bytes_so_far, path)
ProgressCallback = Callable[[int, str], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class UploadFile:
    name: str
    content: bytes

    @classmethod
    def from_path(cls, path: Path) -> "UploadFile":
        return cls(name=path.name, content=path.read_bytes())


@dataclass(frozen=True)
class AddedEntry:
    path: str
    cid: str
    size: int = 0


class ContentStore(Protocol):
    def add(
        self,
        files: Sequence[UploadFile],
        wrap_with_directory: bool = False,
        pin: bool = True,
        progress: Optional[ProgressCallback] = None,
    ) -> AsyncIterator[AddedEntry]:
        ...


class IpfsStore:
    def __init__(self, config: IpfsConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.config = config
        self.transport = transport

    async def add(
        self,
        files: Sequence[UploadFile],
        wrap_with_directory: bool = False,
        pin: bool = True,
        progress: Optional[ProgressCallback] = None,
    ) -> AsyncIterator[AddedEntry]:
        """
        Stream files to the node and yield each stored entry as it arrives.

        Raises:
            GatewayError: If the node is unreachable or reports an error.
        """
        params = {
            "pin": _flag(pin),
            "wrap-with-directory": _flag(wrap_with_directory),
            "progress": _flag(progress is not None),
        }
        multipart = [
            ("file", (upload.name, upload.content, "application/octet-stream")) for upload in files
        ]
        url = f"{self.config.api_url}/add"

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout, transport=self.transport) as client:
                async with client.stream("POST", url, params=params, files=multipart) as response:
                    if response.is_error:
                        body = await response.aread()
                        raise GatewayError(
                            f"IPFS add failed with HTTP {response.status_code}: {body.decode('utf-8', 'replace')}"
                        )
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        entry = _parse_line(line)
                        if "Hash" not in entry:
                            if progress is not None and "Bytes" in entry:
                                outcome = progress(int(entry["Bytes"]), entry.get("Name", ""))
                                if inspect.isawaitable(outcome):
                                    await outcome
                            continue
                        added = AddedEntry(
                            path=entry.get("Name", ""),
                            cid=entry["Hash"],
                            size=int(entry.get("Size", 0)),
                        )
                        logger.debug("IPFS entry stored", path=added.path, cid=added.cid)
                        yield added
        except httpx.HTTPError as exc:
            raise GatewayError(f"IPFS add failed: {exc}") from exc


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _parse_line(line: str) -> dict[str, Any]:
    try:
        entry = json.loads(line)
    except ValueError as exc:
        raise GatewayError(f"IPFS returned a malformed line: {line!r}") from exc
    if "Message" in entry and "Code" in entry:
        raise GatewayError(f"IPFS error: {entry['Message']}")
    return entry
