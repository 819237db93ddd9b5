"""Type registry used to resolve messages, enums and extensions by name."""
from __future__ import annotations

import logging
import threading

from .descriptor import EnumDescriptor, FieldDescriptor, MessageDescriptor


class TypeRegistry:
    """Name -> descriptor lookups.

    Registration takes a lock; lookups are plain dict reads, so a registry
    that is shared between threads only needs to be fully populated before
    it is read.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._messages: dict[str, MessageDescriptor] = {}
        self._enums: dict[str, EnumDescriptor] = {}
        self._extensions: dict[str, FieldDescriptor] = {}
        self._extensions_by_number: dict[tuple[str, int], FieldDescriptor] = {}

    def register_message(self, desc: MessageDescriptor) -> None:
        with self._lock:
            self._check_free(desc.full_name, desc)
            self._messages[desc.full_name] = desc

    def register_enum(self, desc: EnumDescriptor) -> None:
        with self._lock:
            self._check_free(desc.full_name, desc)
            self._enums[desc.full_name] = desc

    def register_extension(self, fd: FieldDescriptor) -> None:
        if not fd.is_extension:
            raise ValueError(f"{fd.full_name} is not an extension field")
        key = (fd.extendee.full_name, fd.number)
        with self._lock:
            self._check_free(fd.full_name, fd)
            existing = self._extensions_by_number.get(key)
            if existing is not None and existing is not fd:
                raise ValueError(
                    f"extension number {fd.number} of {key[0]} already taken by {existing.full_name}"
                )
            self._extensions[fd.full_name] = fd
            self._extensions_by_number[key] = fd

    def _check_free(self, name: str, desc: object) -> None:
        for table in (self._messages, self._enums, self._extensions):
            existing = table.get(name)
            if existing is not None and existing is not desc:
                logging.debug("Registry conflict on %s", name)
                raise ValueError(f"{name} is already registered")

    def find_message_by_name(self, name: str) -> MessageDescriptor | None:
        return self._messages.get(name.lstrip("."))

    def find_message_by_url(self, url: str) -> MessageDescriptor | None:
        return self.find_message_by_name(url.rpartition("/")[2])

    def find_enum_by_name(self, name: str) -> EnumDescriptor | None:
        return self._enums.get(name.lstrip("."))

    def find_extension_by_name(self, name: str) -> FieldDescriptor | None:
        return self._extensions.get(name.lstrip("."))

    def find_extension_by_number(self, message_name: str, number: int) -> FieldDescriptor | None:
        return self._extensions_by_number.get((message_name, number))

    def extensions_of(self, message_name: str) -> list[FieldDescriptor]:
        found = [fd for (owner, _), fd in self._extensions_by_number.items() if owner == message_name]
        return sorted(found, key=lambda fd: fd.number)


_global_types = TypeRegistry()


def global_types() -> TypeRegistry:
    """Return the process-wide default registry."""
    return _global_types


__all__ = ["TypeRegistry", "global_types"]
