"""
Directory inventory loader.

Reads the computer objects exported from the directory (CSV or JSON) and
turns them into :class:`~hostsweep.models.host.HostRecord` instances.  Column
names follow the directory attribute names so a plain export can be used
as-is::

    DNSHostName,Name,OperatingSystem,OperatingSystemVersion
    db1.corp.local,DB1,Windows Server 2019 Standard,10.0 (17763)
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from hostsweep.core.errors import InventoryError
from hostsweep.core.logging import get_logger
from hostsweep.models.host import HostRecord

logger = get_logger(__name__)


class InventoryEntry(BaseModel):
    """One computer object as exported from the directory.

    Blank or whitespace-only names are normalised to ``None``; a record with
    neither name is still accepted here and dropped later by the resolver.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    dns_host_name: Optional[str] = Field(default=None, alias="DNSHostName")
    name: Optional[str] = Field(default=None, alias="Name")
    operating_system: str = Field(default="", alias="OperatingSystem")
    operating_system_version: str = Field(default="", alias="OperatingSystemVersion")

    @field_validator("dns_host_name", "name", mode="before")
    @classmethod
    def blank_to_none(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("operating_system", "operating_system_version", mode="before")
    @classmethod
    def none_to_empty(cls, value: object) -> str:
        return "" if value is None else str(value).strip()

    def to_record(self) -> HostRecord:
        return HostRecord(
            primary_name=self.dns_host_name,
            alias_name=self.name,
            os_name=self.operating_system,
            os_version=self.operating_system_version,
        )


def parse_entries(rows: Iterable[dict[str, Any]]) -> list[HostRecord]:
    """Validate raw directory rows and convert them to host records.

    Raises:
        InventoryError: If a row is not a mapping or fails validation.
    """
    records: list[HostRecord] = []
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            raise InventoryError(f"Inventory row {index} is not an object: {type(row).__name__}")
        try:
            records.append(InventoryEntry.model_validate(row).to_record())
        except ValidationError as exc:
            raise InventoryError(f"Inventory row {index} is invalid: {exc}") from exc
    return records


def load_inventory(path: Union[str, Path]) -> list[HostRecord]:
    """Load host records from a ``.csv`` or ``.json`` directory export.

    Raises:
        InventoryError: When the file is missing, unreadable, of an unknown
            type, or malformed.  This is fatal for the run.
    """
    inventory_path = Path(path)
    if not inventory_path.is_file():
        raise InventoryError(f"Inventory file not found: {inventory_path}")

    suffix = inventory_path.suffix.lower()
    try:
        if suffix == ".csv":
            with inventory_path.open("r", encoding="utf-8-sig", newline="") as handle:
                rows: list[Any] = list(csv.DictReader(handle))
        elif suffix == ".json":
            with inventory_path.open("r", encoding="utf-8-sig") as handle:
                rows = json.load(handle)
            if not isinstance(rows, list):
                raise InventoryError(f"{inventory_path}: expected a JSON array of objects")
        else:
            raise InventoryError(f"Unsupported inventory format: {inventory_path.suffix or '<none>'}")
    except OSError as exc:
        raise InventoryError(f"Could not read inventory {inventory_path}: {exc}") from exc
    except (json.JSONDecodeError, csv.Error) as exc:
        raise InventoryError(f"Malformed inventory {inventory_path}: {exc}") from exc

    records = parse_entries(rows)
    logger.info(
        "Loaded %d directory record(s)",
        len(records),
        extra={"action": "inventory_loaded", "target": str(inventory_path)},
    )
    return records
