from __future__ import annotations

from typing import Any, Callable, Mapping, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import IncompleteMessageError


class MarshalResult(NamedTuple):
    data: bytes
    error: IncompleteMessageError | None = None


class MarshalOptions(BaseModel):
    """Per-call JSON encoding configuration."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # Skip the required-field check after encoding
    allow_partial: bool = False
    # Use proto field names instead of lowerCamelCase JSON names
    use_proto_names: bool = False
    use_enum_numbers: bool = False
    # Emit unset non-oneof fields: null for proto2 scalars and messages,
    # zero values for proto3 scalars, [] and {} for lists and maps
    emit_unpopulated: bool = False
    # Spaces and/or tabs; empty means compact output
    indent: str = ""
    # Falls back to global_types() when unset
    resolver: Optional[Any] = None
    # Message full name -> renderer(encoder, message)
    custom_types: Optional[Mapping[str, Callable[..., None]]] = None

    @field_validator("indent")
    @classmethod
    def _indent_whitespace_only(cls, v: str) -> str:
        if v.strip(" \t"):
            raise ValueError("indent may only be composed of space or tab characters")
        return v

    def marshal(self, message: Any) -> bytes:
        from .encode import marshal_with_options

        return marshal_with_options(self, message)

    def marshal_result(self, message: Any) -> MarshalResult:
        """Like ``marshal`` but report missing required fields in the result."""
        try:
            return MarshalResult(self.marshal(message))
        except IncompleteMessageError as e:
            return MarshalResult(e.data, e)


__all__ = ["MarshalOptions", "MarshalResult"]
