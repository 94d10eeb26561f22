# spcorpus/DB/codec.py
from __future__ import annotations
import hashlib
import struct
from typing import Optional

from ..errors import CorruptRecord
from ..models import SentenceRecord

# Key:   index:u64 big-endian (byte order == numeric order)
# Value: text_len:u32 | text:utf8 | count:i64
#   all big-endian; text is length-prefixed so it may contain any byte.

KEY_SIZE = 8
_KEY = struct.Struct(">Q")
_U32 = struct.Struct(">I")
_I64 = struct.Struct(">q")


def encode_key(index: int) -> bytes:
    if index < 0:
        raise ValueError(f"index must be >= 0, got {index}")
    return _KEY.pack(index)


def decode_key(key: bytes) -> int:
    if len(key) != KEY_SIZE:
        raise CorruptRecord(None, f"key has {len(key)} bytes, expected {KEY_SIZE}")
    return _KEY.unpack(key)[0]


def encode_record(record: SentenceRecord) -> bytes:
    b = record.text.encode("utf-8", errors="surrogatepass")
    if len(b) > 0xFFFFFFFF:
        raise ValueError("sentence too long")
    return _U32.pack(len(b)) + b + _I64.pack(record.count)


def text_hash(text: str) -> bytes:
    """Fixed-size digest of a sentence, used to find an existing record by text."""
    return hashlib.blake2b(text.encode("utf-8", errors="surrogatepass"), digest_size=16).digest()


def decode_record(value: bytes, index: Optional[int] = None) -> SentenceRecord:
    value = bytes(value)
    if len(value) < _U32.size + _I64.size:
        raise CorruptRecord(index, f"value truncated ({len(value)} bytes)")
    ln = _U32.unpack_from(value, 0)[0]
    end = _U32.size + ln
    if end + _I64.size != len(value):
        raise CorruptRecord(index, f"length prefix {ln} does not match value size {len(value)}")
    try:
        text = value[_U32.size:end].decode("utf-8", errors="surrogatepass")
    except UnicodeDecodeError as e:
        raise CorruptRecord(index, f"text is not UTF-8: {e}") from e
    count = _I64.unpack_from(value, end)[0]
    if count < 1:
        raise CorruptRecord(index, f"stored count {count} is not positive")
    return SentenceRecord(text=text, count=count)
