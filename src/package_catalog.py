# package_catalog.py
# Package sizes offered to sellers and the parcel attributes sent to the
# shipping provider for each. Built once per process, read-only afterwards.

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class PackageSize:
    id: str
    length: str        # inches
    width: str         # inches
    height: str        # inches
    weight: str        # pounds
    display_name: str
    description: str
    max_value: str     # maximum recommended declared value

    def public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.display_name,
            "description": self.description,
            "max_value": self.max_value,
        }


class PackageCatalog:
    """
    Immutable lookup of PackageSize by id.

    Ids are stored upper-case; lookup() accepts any casing.
    """

    def __init__(self, sizes: Iterable[PackageSize]):
        entries: Dict[str, PackageSize] = {}
        for size in sizes:
            key = size.id.upper()
            if key in entries:
                raise ValueError(f"Duplicate package size id: {key}")
            entries[key] = size
        self._entries = MappingProxyType(entries)

    def lookup(self, package_size: Any) -> Optional[PackageSize]:
        if not isinstance(package_size, str) or not package_size.strip():
            return None
        return self._entries.get(package_size.strip().upper())

    def sizes(self) -> List[PackageSize]:
        return list(self._entries.values())

    def describe(self) -> List[Dict[str, Any]]:
        return [s.public() for s in self._entries.values()]

    def __contains__(self, package_size: Any) -> bool:
        return self.lookup(package_size) is not None

    def __len__(self) -> int:
        return len(self._entries)


DEFAULT_SIZES = (
    PackageSize(
        id="SINGLE_CARD",
        length="6", width="4", height="0.1",
        weight="0.1",
        display_name="Single Card",
        description="For single cards in top loader",
        max_value="100",
    ),
    PackageSize(
        id="SEALED_PRODUCT",
        length="12", width="8", height="6",
        weight="2",
        display_name="Sealed Product",
        description="For Hobby Boxes, Elite Trainer Boxes, or similar items",
        max_value="500",
    ),
    PackageSize(
        id="BULK",
        length="14", width="12", height="8",
        weight="10",
        display_name="Bulk Order",
        description="For large orders, bulk cards (500+ cards)",
        max_value="1000",
    ),
)


def default_catalog() -> PackageCatalog:
    return PackageCatalog(DEFAULT_SIZES)
