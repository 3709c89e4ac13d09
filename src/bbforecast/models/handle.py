"""Pydantic field type for ciphertext handles (validated from / serialized to 0x hex)."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import PlainSerializer, PlainValidator, WithJsonSchema

from bbforecast.fhe.handles import CiphertextHandle


def _to_handle(value: Any) -> CiphertextHandle:
    if isinstance(value, CiphertextHandle):
        return value
    if isinstance(value, str):
        return CiphertextHandle(value)
    raise ValueError(f"Expected ciphertext handle, got {type(value).__name__}")


Handle = Annotated[
    CiphertextHandle,
    PlainValidator(_to_handle),
    PlainSerializer(str, return_type=str),
    WithJsonSchema({"type": "string", "pattern": "^0x[0-9a-fA-F]{64}$"}),
]
