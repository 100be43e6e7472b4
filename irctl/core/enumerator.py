"""Lazy, single-pass enumeration of registry services by class name."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from types import TracebackType

from irctl.backends.base import ServiceHandle, ServiceIterator, ServiceRegistry

LOGGER = logging.getLogger(__name__)


class ServiceCursor:
    """Forward-only view over one registry match query.

    Each yielded handle belongs to the caller, who must release it. Closing the
    cursor releases the underlying OS iterator; a closed or exhausted cursor
    yields nothing more.
    """

    def __init__(self, iterator: ServiceIterator) -> None:
        self._iterator: ServiceIterator | None = iterator

    def __iter__(self) -> Iterator[ServiceHandle]:
        return self

    def __next__(self) -> ServiceHandle:
        if self._iterator is None:
            raise StopIteration
        service = self._iterator.next_service()
        if service is None:
            self.close()
            raise StopIteration
        return service

    def close(self) -> None:
        if self._iterator is not None:
            iterator, self._iterator = self._iterator, None
            iterator.release()

    def __enter__(self) -> ServiceCursor:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __copy__(self) -> ServiceCursor:
        raise TypeError("ServiceCursor cannot be copied")

    def __deepcopy__(self, memo: dict[int, object]) -> ServiceCursor:
        raise TypeError("ServiceCursor cannot be copied")


class ServiceEnumerator:
    def __init__(self, registry: ServiceRegistry, *, class_name: str) -> None:
        self.registry = registry
        self.class_name = class_name

    def enumerate(self) -> ServiceCursor:
        """Start a fresh match query; raises EnumerationError when it cannot run."""
        LOGGER.debug("Matching registry services of class %s", self.class_name)
        return ServiceCursor(self.registry.matching_services(self.class_name))
