"""
Static service/package price catalog.

Prices are fixed per package; the selected service does not change the price.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class CatalogEntry:
    value: str
    label: str
    price: int
    details: str = ""


class PackageCatalog:
    """Lookup table of bookable services and priced packages."""

    def __init__(self, services: List[CatalogEntry], packages: List[CatalogEntry]):
        self.services = list(services)
        self.packages = list(packages)
        self._packages_by_value = {entry.value: entry for entry in self.packages}
        self._service_values = {entry.value for entry in self.services}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageCatalog":
        """Build from a validated catalog document ({services: [...], packages: [...]})."""

        def _entries(items: List[Dict[str, Any]]) -> List[CatalogEntry]:
            return [
                CatalogEntry(
                    value=item["value"],
                    label=item.get("label", item["value"]),
                    price=int(item["price"]),
                    details=item.get("details", ""),
                )
                for item in items
            ]

        return cls(_entries(data.get("services", [])), _entries(data.get("packages", [])))

    def has_service(self, service_type: str) -> bool:
        return service_type in self._service_values

    def has_package(self, package_type: str) -> bool:
        return package_type in self._packages_by_value

    def get_package(self, package_type: str) -> Optional[CatalogEntry]:
        return self._packages_by_value.get(package_type)

    def price_for(self, package_type: Optional[str]) -> int:
        """Fixed price of a package; 0 when no (or an unknown) package is given."""
        if not package_type:
            return 0
        entry = self._packages_by_value.get(package_type)
        return entry.price if entry else 0
