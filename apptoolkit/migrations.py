"""Checks of the database schema migration version."""

from __future__ import annotations

import contextlib
import os
import re
from dataclasses import dataclass
from typing import Any


class MigrationVersionError(Exception):
    """Raised when the database migration version is not acceptable."""


@dataclass(frozen=True)
class VersionRange:
    """Accepts versions between ``lower`` and ``upper`` inclusive."""

    lower: int
    upper: int

    def validate(self, version: int) -> None:
        """Raise MigrationVersionError if ``version`` is out of range."""
        if version < self.lower:
            raise MigrationVersionError(
                f"Database at version {version}, lower than requirement of {self.lower}"
            )
        if version > self.upper:
            raise MigrationVersionError(
                f"Database at version {version}, higher than requirement of {self.upper}"
            )


@dataclass(frozen=True)
class VersionExactly:
    """Accepts only the ``target`` version."""

    target: int = 0

    def validate(self, version: int) -> None:
        """Raise MigrationVersionError if ``version`` differs from the target."""
        if version != self.target:
            raise MigrationVersionError(
                f"Database at version {version}, not equal to requirement of {self.target}"
            )


def version_range(lower: int, upper: int) -> VersionRange:
    """Return a validator for a range of versions."""
    return VersionRange(lower, upper)


def version_exactly(version: int) -> VersionExactly:
    """Return a validator for one exact version."""
    return VersionExactly(version)


_INT = re.compile(r"[+-]?[0-9]+")


def max_version_from(path: str | os.PathLike[str]) -> VersionExactly:
    """Return a validator for the highest numbered ``.sql`` migration in ``path``."""
    target = 0
    with os.scandir(path) as entries:
        for entry in entries:
            name = entry.name
            if entry.is_dir() or "." not in name:
                continue
            if name[name.rfind("."):] != ".sql":
                continue
            parts = name.split("_")
            if len(parts) < 2:
                raise MigrationVersionError(
                    f'Filename "{name}" does not match migration file naming '
                    "requirements ##_name.[up/down].sql"
                )
            if not _INT.fullmatch(parts[0]):
                raise MigrationVersionError(f'invalid migration version "{parts[0]}" in "{name}"')
            target = max(target, int(parts[0]))
    return VersionExactly(target)


def verify_migration_version(connection: Any, validator: Any) -> None:
    """Check the ``schema_migrations`` table of a DB-API connection against ``validator``."""
    with contextlib.closing(connection.cursor()) as cursor:
        cursor.execute("SELECT * FROM schema_migrations")
        row = cursor.fetchone()
    if row is None:
        raise MigrationVersionError("no rows in result set")
    if len(row) != 2:
        raise MigrationVersionError(f"expected 2 columns in schema_migrations, got {len(row)}")
    version, dirty = int(row[0]), bool(row[1])
    if dirty:
        raise MigrationVersionError(f"Database at version {version}, but is dirty")
    validator.validate(version)