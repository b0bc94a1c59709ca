"""
CatalogService -- create, update and delete parts and locations.

Responsibility:
    Owns the identity tables every ledger row references.  Also provides
    the create-on-write helpers (``get_or_create_part`` /
    ``get_or_create_location``) used by receiving and import collaborators.

Architecture position:
    Kernel > Services -- imperative shell, owns the Catalog persistence
    lifecycle.

Invariants enforced:
    - Business keys (part_code, location_code) are unique and non-blank.
    - Part.name is non-blank.
    - get_or_create_* fill only empty descriptive fields on an existing
      row; populated values are never overwritten.

Failure modes:
    - DuplicateCatalogKeyError: business key already taken.
    - InvalidArgumentError: blank key or name, unknown attribute, or a
      dimension that is not a number.
    - PartNotFoundError / LocationNotFoundError: unknown id.

Audit relevance:
    Deleting a part or a location removes its inventory rows, its move
    history and its count records through ON DELETE CASCADE.  Deletions are
    logged at WARNING.
"""

from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import LocationView, PartView
from stock_kernel.exceptions import (
    DuplicateCatalogKeyError,
    InvalidArgumentError,
    LocationNotFoundError,
    PartNotFoundError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.catalog import (
    LOCATION_ATTRIBUTES,
    PART_ATTRIBUTES,
    Location,
    Part,
)
from stock_kernel.services.base import BaseService

logger = get_logger("services.catalog")

_DIMENSION_FIELDS = frozenset({"width", "length", "thickness"})


def get_part_or_raise(session: Session, part_id: UUID) -> Part:
    """Load a part by id or raise PartNotFoundError."""
    part = session.get(Part, part_id)
    if part is None:
        raise PartNotFoundError(str(part_id))
    return part


def get_location_or_raise(session: Session, location_id: UUID) -> Location:
    """Load a location by id or raise LocationNotFoundError."""
    location = session.get(Location, location_id)
    if location is None:
        raise LocationNotFoundError(str(location_id))
    return location


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require_text(field: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(field, "must be a non-empty string")
    return value.strip()


def _clean_value(field: str, value: Any) -> Any:
    """Normalize a descriptive attribute (blank -> None, dimensions -> Decimal)."""
    if _is_empty(value):
        return None
    if field in _DIMENSION_FIELDS:
        if isinstance(value, bool):
            raise InvalidArgumentError(field, "must be a number")
        try:
            return value if isinstance(value, Decimal) else Decimal(str(value))
        except InvalidOperation:
            raise InvalidArgumentError(field, "must be a number") from None
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _clean_attributes(allowed: tuple[str, ...], attributes: dict[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(attributes) - set(allowed))
    if unknown:
        raise InvalidArgumentError(unknown[0], "unknown attribute")
    return {key: _clean_value(key, value) for key, value in attributes.items()}


class CatalogService(BaseService):
    """
    Write side of the catalog.

    Contract:
        Every method flushes; none commits.  Methods return DTOs, except the
        get_or_create helpers which return ``(view, created)``.
    """

    # =========================================================================
    # Parts
    # =========================================================================

    def create_part(self, part_code: str, name: str, **attributes: Any) -> PartView:
        """
        Create a part.

        Raises:
            InvalidArgumentError: blank part_code/name or unknown attribute.
            DuplicateCatalogKeyError: part_code already exists.
        """
        part_code = _require_text("part_code", part_code)
        name = _require_text("name", name)
        values = _clean_attributes(PART_ATTRIBUTES, attributes)

        if self._find_part(part_code) is not None:
            raise DuplicateCatalogKeyError("Part", part_code)

        part = Part(
            part_code=part_code,
            name=name,
            created_at=self.clock.now(),
            **values,
        )
        self._insert(part, "Part", part_code)

        logger.info(
            "part_created",
            extra={"part_id": str(part.id), "part_code": part_code},
        )
        return PartView.from_model(part)

    def update_part(self, part_id: UUID, **changes: Any) -> PartView:
        """
        Update only the provided fields of a part.

        ``part_code`` and ``name`` may be changed but not blanked.

        Raises:
            PartNotFoundError, InvalidArgumentError, DuplicateCatalogKeyError.
        """
        part = get_part_or_raise(self.session, part_id)
        fields = sorted(changes)

        if "name" in changes:
            part.name = _require_text("name", changes.pop("name"))

        if "part_code" in changes:
            new_code = _require_text("part_code", changes.pop("part_code"))
            if new_code != part.part_code:
                existing = self._find_part(new_code)
                if existing is not None:
                    raise DuplicateCatalogKeyError("Part", new_code)
                part.part_code = new_code

        for key, value in _clean_attributes(PART_ATTRIBUTES, changes).items():
            setattr(part, key, value)

        self.session.flush()
        logger.info(
            "part_updated",
            extra={"part_id": str(part.id), "fields": fields},
        )
        return PartView.from_model(part)

    def delete_part(self, part_id: UUID) -> None:
        """Delete a part with its inventory rows, moves and count records."""
        part = get_part_or_raise(self.session, part_id)
        part_code = part.part_code
        self.session.delete(part)
        self.session.flush()
        logger.warning(
            "part_deleted",
            extra={"part_id": str(part_id), "part_code": part_code},
        )

    def get_or_create_part(
        self,
        part_code: str,
        name: str,
        **attributes: Any,
    ) -> tuple[PartView, bool]:
        """
        Find a part by code or create it.

        On an existing part only empty descriptive fields are filled in from
        ``attributes``; ``name`` and populated fields are left alone.

        Returns:
            (part view, created)
        """
        part_code = _require_text("part_code", part_code)
        name = _require_text("name", name)
        values = _clean_attributes(PART_ATTRIBUTES, attributes)

        part = self._find_part(part_code)
        if part is None:
            savepoint = self.session.begin_nested()
            try:
                part = Part(
                    part_code=part_code,
                    name=name,
                    created_at=self.clock.now(),
                    **values,
                )
                self.session.add(part)
                self.session.flush()
                savepoint.commit()
                logger.info(
                    "part_created",
                    extra={"part_id": str(part.id), "part_code": part_code},
                )
                return PartView.from_model(part), True
            except IntegrityError:
                # Concurrent create of the same code; use the winner's row.
                savepoint.rollback()
                part = self._find_part(part_code)
                if part is None:
                    raise

        filled = self._fill_empty(part, values)
        if filled:
            self.session.flush()
            logger.info(
                "part_fields_filled",
                extra={"part_id": str(part.id), "fields": filled},
            )
        return PartView.from_model(part), False

    # =========================================================================
    # Locations
    # =========================================================================

    def create_location(
        self,
        location_code: str,
        location_type: str | None = None,
        zone: str | None = None,
    ) -> LocationView:
        location_code = _require_text("location_code", location_code)

        if self._find_location(location_code) is not None:
            raise DuplicateCatalogKeyError("Location", location_code)

        location = Location(
            location_code=location_code,
            location_type=_clean_value("location_type", location_type),
            zone=_clean_value("zone", zone),
            created_at=self.clock.now(),
        )
        self._insert(location, "Location", location_code)

        logger.info(
            "location_created",
            extra={"location_id": str(location.id), "location_code": location_code},
        )
        return LocationView.from_model(location)

    def update_location(self, location_id: UUID, **changes: Any) -> LocationView:
        location = get_location_or_raise(self.session, location_id)
        fields = sorted(changes)

        if "location_code" in changes:
            new_code = _require_text("location_code", changes.pop("location_code"))
            if new_code != location.location_code:
                if self._find_location(new_code) is not None:
                    raise DuplicateCatalogKeyError("Location", new_code)
                location.location_code = new_code

        for key, value in _clean_attributes(LOCATION_ATTRIBUTES, changes).items():
            setattr(location, key, value)

        self.session.flush()
        logger.info(
            "location_updated",
            extra={"location_id": str(location.id), "fields": fields},
        )
        return LocationView.from_model(location)

    def delete_location(self, location_id: UUID) -> None:
        """Delete a location with its inventory rows, moves and count records."""
        location = get_location_or_raise(self.session, location_id)
        location_code = location.location_code
        self.session.delete(location)
        self.session.flush()
        logger.warning(
            "location_deleted",
            extra={"location_id": str(location_id), "location_code": location_code},
        )

    def get_or_create_location(
        self,
        location_code: str,
        location_type: str | None = None,
        zone: str | None = None,
    ) -> tuple[LocationView, bool]:
        """Find a location by code or create it; fill empty tags only."""
        location_code = _require_text("location_code", location_code)
        values = {
            "location_type": _clean_value("location_type", location_type),
            "zone": _clean_value("zone", zone),
        }

        location = self._find_location(location_code)
        if location is None:
            savepoint = self.session.begin_nested()
            try:
                location = Location(
                    location_code=location_code,
                    created_at=self.clock.now(),
                    **values,
                )
                self.session.add(location)
                self.session.flush()
                savepoint.commit()
                logger.info(
                    "location_created",
                    extra={
                        "location_id": str(location.id),
                        "location_code": location_code,
                    },
                )
                return LocationView.from_model(location), True
            except IntegrityError:
                savepoint.rollback()
                location = self._find_location(location_code)
                if location is None:
                    raise

        filled = self._fill_empty(location, values)
        if filled:
            self.session.flush()
        return LocationView.from_model(location), False

    # =========================================================================
    # Helpers
    # =========================================================================

    def _find_part(self, part_code: str) -> Part | None:
        return self.session.execute(
            select(Part).where(Part.part_code == part_code)
        ).scalar_one_or_none()

    def _find_location(self, location_code: str) -> Location | None:
        return self.session.execute(
            select(Location).where(Location.location_code == location_code)
        ).scalar_one_or_none()

    def _insert(self, row: Part | Location, entity_type: str, key: str) -> None:
        """Insert inside a savepoint so a lost race surfaces as a typed error."""
        savepoint = self.session.begin_nested()
        try:
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            raise DuplicateCatalogKeyError(entity_type, key) from None

    @staticmethod
    def _fill_empty(row: Part | Location, values: dict[str, Any]) -> list[str]:
        filled = []
        for key, value in values.items():
            if value is None:
                continue
            if _is_empty(getattr(row, key)):
                setattr(row, key, value)
                filled.append(key)
        return filled
