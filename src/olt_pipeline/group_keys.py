"""Group correlation key derivation and next-group record encoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .model import GroupKey
from .services import NextGroup

RECORD_MAGIC = b"OLTG"
RECORD_VERSION = 1
_RECORD_HEADER = struct.Struct(">4sBH")
_NEXT_ID = struct.Struct(">i")


class GroupKeyCodec:
    """Deterministically map next objective ids to group keys.

    The key is ``<namespace>/`` followed by the 32-bit big-endian next id, so
    it is stable across restarts and distinct for every id within a
    namespace.  Pipeliners for different devices may share a namespace since
    the group subsystem scopes keys per device.

    Parameters
    ----------
    namespace:
        Prefix identifying the owner of the keys.  Must be non-empty.
    """

    def __init__(self, namespace: str) -> None:
        if not namespace:
            raise ValueError("group key namespace must not be empty")
        self._prefix = namespace.encode("utf-8") + b"/"

    @property
    def namespace(self) -> str:
        return self._prefix[:-1].decode("utf-8")

    def key_for(self, next_id: int) -> GroupKey:
        """Return the key of ``next_id``; ids must fit in a signed 32-bit int."""

        try:
            return GroupKey(self._prefix + _NEXT_ID.pack(next_id))
        except struct.error:
            raise ValueError(f"next objective id {next_id} is out of range") from None

    # ------------------------------------------------------------------
    # Record encoding
    # ------------------------------------------------------------------
    @staticmethod
    def encode_record(key: GroupKey) -> bytes:
        return _RECORD_HEADER.pack(RECORD_MAGIC, RECORD_VERSION, len(key.data)) + key.data

    @staticmethod
    def decode_record(data: bytes) -> GroupKey:
        if data is None or len(data) < _RECORD_HEADER.size:
            raise ValueError("next group record is truncated")
        magic, version, length = _RECORD_HEADER.unpack_from(data)
        if magic != RECORD_MAGIC:
            raise ValueError("next group record has an unknown format")
        if version != RECORD_VERSION:
            raise ValueError(f"unsupported next group record version {version}")
        payload = data[_RECORD_HEADER.size:]
        if len(payload) != length:
            raise ValueError("next group record length mismatch")
        return GroupKey(bytes(payload))


@dataclass(frozen=True)
class PipelineGroup(NextGroup):
    """Next-group record holding the key of an installed broadcast group."""

    key: GroupKey

    def data(self) -> bytes:
        return GroupKeyCodec.encode_record(self.key)
