"""Zabbix sender protocol codec.

Frame layout::

    b"ZBXD" | flags (1 byte) | data length (uint32 LE) | reserved (uint32 LE) | JSON

Requests carry ``{"request": "sender data", "data": [...], "clock": ts}``;
the trapper answers ``{"response": "success", "info": "processed: 1; failed:
0; total: 1; seconds spent: 0.000055"}``. Only the plain (uncompressed,
non-large) frame variant is produced or accepted.
"""

from __future__ import annotations

import asyncio
import json
import re
import struct
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict

MAGIC = b"ZBXD"
FLAG_PROTOCOL = 0x01
FLAG_COMPRESSED = 0x02
FLAG_LARGE = 0x04
_LENGTHS = struct.Struct("<II")
HEADER_SIZE = len(MAGIC) + 1 + _LENGTHS.size

_INFO_RE = re.compile(
    r"processed:\s*(?P<processed>\d+);\s*"
    r"failed:\s*(?P<failed>\d+);\s*"
    r"total:\s*(?P<total>\d+);\s*"
    r"seconds spent:\s*(?P<seconds>[0-9.]+)"
)


class ProtocolError(ValueError):
    """Malformed or unsupported Zabbix frame."""


class ItemValue(BaseModel):
    """One value for one item key, as sent to the trapper."""

    model_config = ConfigDict(frozen=True)

    host: str
    key: str
    value: str
    clock: Optional[int] = None


class SenderRequest(BaseModel):
    request: str = "sender data"
    data: list[ItemValue]
    clock: Optional[int] = None


class SendResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    processed: int
    failed: int
    total: int
    seconds_spent: float


def item_value(host: str, key: str, value: Any, clock: Optional[int] = None) -> ItemValue:
    return ItemValue(host=host, key=key, value=str(value), clock=clock)


def encode_frame(payload: bytes) -> bytes:
    return MAGIC + bytes([FLAG_PROTOCOL]) + _LENGTHS.pack(len(payload), 0) + payload


def encode_request(values: Sequence[ItemValue], clock: Optional[int] = None) -> bytes:
    request = SenderRequest(data=list(values), clock=clock)
    return encode_frame(request.model_dump_json(exclude_none=True).encode("utf-8"))


def parse_header(header: bytes) -> int:
    """Validate a frame header and return the payload length."""
    if len(header) != HEADER_SIZE or not header.startswith(MAGIC):
        raise ProtocolError(f"bad frame header {header[:HEADER_SIZE]!r}")
    flags = header[len(MAGIC)]
    if not flags & FLAG_PROTOCOL or flags & (FLAG_COMPRESSED | FLAG_LARGE):
        raise ProtocolError(f"unsupported frame flags 0x{flags:02x}")
    length, _ = _LENGTHS.unpack(header[len(MAGIC) + 1 :])
    return length


def _decode_body(body: bytes) -> dict:
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"frame payload is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ProtocolError("frame payload is not a JSON object")
    return payload


def decode_frame(frame: bytes) -> dict:
    length = parse_header(frame[:HEADER_SIZE])
    body = frame[HEADER_SIZE:]
    if len(body) != length:
        raise ProtocolError(f"frame announces {length} bytes, got {len(body)}")
    return _decode_body(body)


async def read_frame(reader: asyncio.StreamReader) -> dict:
    header = await reader.readexactly(HEADER_SIZE)
    length = parse_header(header)
    return _decode_body(await reader.readexactly(length))


def parse_info(info: str) -> SendResult:
    match = _INFO_RE.search(info or "")
    if match is None:
        raise ProtocolError(f"unrecognised response info {info!r}")
    return SendResult(
        processed=int(match["processed"]),
        failed=int(match["failed"]),
        total=int(match["total"]),
        seconds_spent=float(match["seconds"]),
    )
