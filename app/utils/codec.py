"""
Byte encodings for the key-value store.
Integer keys are fixed-width big-endian so that bytewise key order equals
numeric order; records are JSON produced by their Pydantic models.
"""
from typing import Type, TypeVar
import struct

from pydantic import BaseModel, ValidationError

KEY_WIDTH = 8
_KEY_FORMAT = ">Q"

RecordT = TypeVar("RecordT", bound=BaseModel)


def encode_key(value: int) -> bytes:
    """
    Encode a non-negative integer as an 8-byte big-endian key.

    Raises:
        ValueError: If value is negative or does not fit in 64 bits
    """
    if value < 0:
        raise ValueError(f"Keys must be non-negative, got {value}")
    try:
        return struct.pack(_KEY_FORMAT, value)
    except struct.error as e:
        raise ValueError(f"Key {value} does not fit in {KEY_WIDTH} bytes") from e


def decode_key(raw: bytes) -> int:
    """Decode an 8-byte big-endian key."""
    if len(raw) != KEY_WIDTH:
        raise ValueError(f"Expected a {KEY_WIDTH}-byte key, got {len(raw)} bytes")
    return struct.unpack(_KEY_FORMAT, raw)[0]


def encode_record(record: BaseModel) -> bytes:
    return record.model_dump_json().encode("utf-8")


def decode_record(raw: bytes, model: Type[RecordT]) -> RecordT:
    """
    Decode a JSON record into its model.

    Raises:
        ValueError: If raw is empty or does not match the model
    """
    if not raw:
        raise ValueError(f"Empty {model.__name__} record")
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise ValueError(f"Malformed {model.__name__} record: {e}") from e
