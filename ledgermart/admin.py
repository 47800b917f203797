"""Administrator-gated parameter control."""

from __future__ import annotations

from typing import Tuple

from ledgermart.errors import InvalidParams, NotAuthorized
from ledgermart.state import RegistryState
from ledgermart.validation import Validators


class AdminControl:
    """The only writer of the administrator identity, fee rate and metadata limit."""

    def __init__(self, state: RegistryState):
        self._state = state

    def _require_admin(self, caller: str) -> None:
        if caller != self._state.params.admin:
            raise NotAuthorized(f"{caller} is not the administrator")

    def set_platform_fee(self, caller: str, new_fee_bps: int) -> Tuple[int, int]:
        """Returns (old, new) fee in basis points."""
        self._require_admin(caller)
        Validators.require_fee_bps(new_fee_bps)
        old = self._state.params.platform_fee_bps
        self._state.update_params(platform_fee_bps=new_fee_bps)
        return old, new_fee_bps

    def transfer_ownership(self, caller: str, new_admin: str) -> Tuple[str, str]:
        """Hand the administrator role over. Returns (old, new) administrator."""
        self._require_admin(caller)
        Validators.require_identity(new_admin, "new_admin")
        if new_admin == caller or new_admin == self._state.params.admin:
            raise InvalidParams("new administrator must differ from the current one")
        old = self._state.params.admin
        self._state.update_params(admin=new_admin)
        return old, new_admin

    def set_max_metadata_length(self, caller: str, new_length: int) -> Tuple[int, int]:
        """Returns (old, new) limit. Existing assets are unaffected."""
        self._require_admin(caller)
        Validators.require_metadata_limit(new_length)
        old = self._state.params.max_metadata_length
        self._state.update_params(max_metadata_length=new_length)
        return old, new_length
