"""Registry tables and their copy-on-write snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict

from ledgermart.models import AdminParams, Asset, Listing


@dataclass
class RegistryState:
    """
    The complete mutable state of one marketplace deployment.

    Rows are immutable, so a snapshot only needs shallow copies of the
    tables. ``restore`` writes back in place so that components holding a
    reference to this object keep seeing the live tables.
    """
    params: AdminParams
    assets: Dict[int, Asset] = field(default_factory=dict)
    listings: Dict[int, Listing] = field(default_factory=dict)
    creation_counts: Dict[str, int] = field(default_factory=dict)

    def copy(self) -> "RegistryState":
        return RegistryState(
            params=self.params,
            assets=dict(self.assets),
            listings=dict(self.listings),
            creation_counts=dict(self.creation_counts),
        )

    def restore(self, snapshot: "RegistryState") -> None:
        self.params = snapshot.params
        self.assets.clear()
        self.assets.update(snapshot.assets)
        self.listings.clear()
        self.listings.update(snapshot.listings)
        self.creation_counts.clear()
        self.creation_counts.update(snapshot.creation_counts)

    def update_params(self, **changes: Any) -> AdminParams:
        self.params = replace(self.params, **changes)
        return self.params

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible export. Keys are strings, rows sorted by id."""
        return {
            "params": self.params.to_dict(),
            "assets": {str(k): self.assets[k].to_dict() for k in sorted(self.assets)},
            "listings": {str(k): self.listings[k].to_dict() for k in sorted(self.listings)},
            "creation_counts": dict(sorted(self.creation_counts.items())),
        }
