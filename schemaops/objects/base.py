from __future__ import annotations

from abc import ABC, abstractmethod
import dataclasses
from typing import Any, Sequence

from ..db.models import MutationResult, ObjectLocator


class SchemaObjectCapability(ABC):
    """
    Abstract base for per-object-type store capabilities.

    A capability knows how to read, idempotently create and idempotently drop
    one kind of structural object. All store access goes through the provided
    connection; the capability never opens or closes connections itself.
    """

    object_type: str = ""
    # named objects are addressed by ObjectLocator.object_name
    named: bool = False
    display_name: str = ""
    plural_name: str = ""

    @abstractmethod
    async def read(self, conn: Any, locator: ObjectLocator) -> Any | None:
        """Return the object addressed by the locator, or None if absent."""
        ...

    @abstractmethod
    async def create_if_absent(
        self, conn: Any, locator: ObjectLocator, definition: Any
    ) -> MutationResult:
        """Create the object unless one is already present."""
        ...

    @abstractmethod
    async def drop_if_present(self, conn: Any, locator: ObjectLocator) -> MutationResult:
        """Drop the object if it is present."""
        ...

    async def read_all(self, conn: Any, locator: ObjectLocator) -> list[Any]:
        found = await self.read(conn, locator)
        return [] if found is None else [found]

    async def find_created(self, conn: Any, locator: ObjectLocator, definition: Any) -> Any | None:
        """
        Re-read the object after create_if_absent().

        The result is the authoritative store state, which may differ from the
        requested definition (generated names, column order).
        """
        return await self.read(conn, locator)

    def locate(self, locator: ObjectLocator, definition: Any) -> ObjectLocator:
        """Locator addressing the object a create request will produce."""
        return locator

    @abstractmethod
    def name_of(self, definition: Any) -> str | None:
        ...

    def columns_of(self, definition: Any) -> Sequence[str]:
        return tuple(definition.column_names)

    def label(self, locator: ObjectLocator) -> str:
        """Human-readable reference to the target, e.g. "index 'ix_orders_id'"."""
        return self.display_name

    def identity(self, definition: Any) -> str:
        name = self.name_of(definition)
        if name:
            return f"{self.display_name} '{name}'"
        return f"{self.display_name} on columns ({', '.join(self.columns_of(definition))})"


class NamedObjectCapability(SchemaObjectCapability):
    """
    Base for objects addressed by name within a table (indexes, unique
    constraints).

    Subclasses implement read_all(); lookups by name are case-insensitive.
    """

    named = True

    def label(self, locator: ObjectLocator) -> str:
        return f"{self.display_name} '{locator.object_name}'"

    def locate(self, locator: ObjectLocator, definition: Any) -> ObjectLocator:
        return dataclasses.replace(locator, object_name=self.name_of(definition))

    @abstractmethod
    async def read_all(self, conn: Any, locator: ObjectLocator) -> list[Any]:
        ...

    async def read(self, conn: Any, locator: ObjectLocator) -> Any | None:
        wanted = (locator.object_name or "").lower()
        for found in await self.read_all(conn, locator):
            if (self.name_of(found) or "").lower() == wanted:
                return found
        return None

    async def find_created(self, conn: Any, locator: ObjectLocator, definition: Any) -> Any | None:
        found = await self.read(conn, locator)
        if found is not None:
            return found

        # Some backends rename on create; fall back to matching the column set.
        wanted = {c.lower() for c in self.columns_of(definition)}
        for candidate in await self.read_all(conn, locator):
            if {c.lower() for c in self.columns_of(candidate)} == wanted:
                return candidate
        return None
