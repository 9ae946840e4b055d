"""Payload codecs.

A codec turns an arbitrary payload into the bytes written to a leaf file and
back. The store never looks inside the bytes.
"""

from __future__ import annotations

import json
import pickle
from typing import Any, Protocol

from idtree.errors import CorruptDataError
from idtree.util.json import json_dumps_safe


class ObjectCodec(Protocol):
    name: str

    def serialize(self, payload: Any) -> bytes:
        ...

    def deserialize(self, data: bytes) -> Any:
        ...


class PickleCodec:
    name = "pickle"

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL) -> None:
        self.protocol = protocol

    def serialize(self, payload: Any) -> bytes:
        return pickle.dumps(payload, protocol=self.protocol)

    def deserialize(self, data: bytes) -> Any:
        try:
            return pickle.loads(data)
        except Exception as exc:
            raise CorruptDataError(f"cannot unpickle payload: {exc}") from exc


class JsonCodec:
    """UTF-8 JSON. Datetimes, bytes and sets are stored in their JSON-safe form
    and come back as strings and lists."""

    name = "json"

    def serialize(self, payload: Any) -> bytes:
        return json_dumps_safe(payload, ensure_ascii=False, sort_keys=True).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise CorruptDataError(f"cannot decode JSON payload: {exc}") from exc


CODECS = {
    PickleCodec.name: PickleCodec,
    JsonCodec.name: JsonCodec,
}


def get_codec(name: str | None) -> ObjectCodec:
    if not name:
        return PickleCodec()
    try:
        return CODECS[name.lower()]()
    except KeyError:
        raise ValueError(f"unknown codec {name!r}; expected one of {sorted(CODECS)}") from None
