"""
Asset Registry Test Suite

Tests for asset issuance, direct transfer and lookups:
- id allocation (strictly increasing, never reused, starts at 1)
- metadata bounds
- transfer authorisation and the recipient restrictions
- lifetime creation counts

Run with: pytest tests/test_asset_registry.py -v
"""

import pytest

from ledgermart.errors import ErrorCode

ADMIN = "SP-ADMIN"
ALICE = "SP-ALICE"
BOB = "SP-BOB"
CAROL = "SP-CAROL"


# =============================================================================
# ISSUANCE
# =============================================================================

class TestCreateAsset:
    """Tests for create_asset."""

    def test_first_asset_gets_id_one(self, market):
        result = market.create_asset(ALICE, "ipfs://first", True)
        assert result.ok
        assert result.value == 1
        assert market.get_next_asset_id() == 2

    def test_ids_strictly_increase(self, market):
        """Ids are sequential regardless of which identity creates."""
        ids = [
            market.create_asset(caller, f"item-{i}", i % 2 == 0).unwrap()
            for i, caller in enumerate([ALICE, BOB, ALICE, CAROL, BOB])
        ]
        assert ids == [1, 2, 3, 4, 5]

    def test_creator_owns_new_asset_immediately(self, market):
        asset_id = market.create_asset(BOB, "ipfs://bob", False).unwrap()
        owner = market.get_owner(asset_id)
        assert owner.ok
        assert owner.value == BOB

    def test_record_fields(self, market, host):
        """Creation stamps the current block height and keeps the flag."""
        host.mine(5)
        asset_id = market.create_asset(ALICE, "ipfs://stamped", False).unwrap()
        asset = market.get_asset(asset_id)

        assert asset.asset_id == asset_id
        assert asset.owner == ALICE
        assert asset.metadata == "ipfs://stamped"
        assert asset.created_at == 105
        assert asset.transferable is False

    def test_created_at_is_not_changed_by_later_blocks(self, market, host):
        asset_id = market.create_asset(ALICE, "m", True).unwrap()
        host.mine(50)
        market.transfer_asset(ALICE, asset_id, BOB).unwrap()
        assert market.get_asset(asset_id).created_at == 100

    def test_empty_metadata_rejected(self, market):
        result = market.create_asset(ALICE, "", True)
        assert not result.ok
        assert result.error == ErrorCode.INVALID_METADATA
        assert market.get_next_asset_id() == 1

    def test_metadata_at_limit_accepted(self, market):
        assert market.create_asset(ALICE, "x" * 256, True).ok

    def test_metadata_over_limit_rejected(self, market):
        result = market.create_asset(ALICE, "x" * 257, True)
        assert result.error == ErrorCode.INVALID_METADATA
        assert market.get_owner_asset_count(ALICE) == 0

    def test_non_text_metadata_rejected(self, market):
        result = market.create_asset(ALICE, b"bytes", True)
        assert result.error == ErrorCode.INVALID_METADATA

    def test_metadata_length_counts_characters(self, market):
        """Multi-byte characters count once each."""
        assert market.create_asset(ALICE, "é" * 256, True).ok

    def test_rejected_creation_does_not_consume_an_id(self, market):
        market.create_asset(ALICE, "", True)
        assert market.create_asset(ALICE, "ok", True).value == 1

    def test_invalid_caller_rejected(self, market):
        result = market.create_asset("", "meta", True)
        assert result.error == ErrorCode.INVALID_PARAMS
        assert market.get_next_asset_id() == 1


# =============================================================================
# CREATION COUNTS
# =============================================================================

class TestOwnerAssetCount:
    """The per-identity counter tracks lifetime creations, not holdings."""

    def test_unknown_identity_has_zero(self, market):
        assert market.get_owner_asset_count("SP-NOBODY") == 0

    def test_counts_each_creation(self, market):
        market.create_asset(ALICE, "a", True)
        market.create_asset(ALICE, "b", True)
        market.create_asset(BOB, "c", True)
        assert market.get_owner_asset_count(ALICE) == 2
        assert market.get_owner_asset_count(BOB) == 1

    def test_not_decremented_on_transfer(self, market, alice_asset):
        market.transfer_asset(ALICE, alice_asset, BOB).unwrap()
        assert market.get_owner_asset_count(ALICE) == 1
        assert market.get_owner_asset_count(BOB) == 0

    def test_not_incremented_on_purchase(self, market, host, alice_asset):
        market.list_asset(ALICE, alice_asset, 100).unwrap()
        host.credit(BOB, 100)
        market.buy_asset(BOB, alice_asset).unwrap()
        assert market.get_owner_asset_count(BOB) == 0
        assert market.get_owner_asset_count(ALICE) == 1


# =============================================================================
# TRANSFER
# =============================================================================

class TestTransferAsset:
    """Tests for transfer_asset."""

    def test_owner_can_transfer(self, market, alice_asset):
        before = market.get_asset(alice_asset)
        result = market.transfer_asset(ALICE, alice_asset, BOB)

        assert result.ok and result.value is True
        after = market.get_asset(alice_asset)
        assert after.owner == BOB
        assert (after.metadata, after.created_at, after.transferable) == (
            before.metadata, before.created_at, before.transferable
        )

    @pytest.mark.parametrize("asset_id", [0, -1, 2, 99])
    def test_out_of_range_id_is_invalid_params(self, market, alice_asset, asset_id):
        result = market.transfer_asset(ALICE, asset_id, BOB)
        assert result.error == ErrorCode.INVALID_PARAMS

    def test_non_integer_id_is_invalid_params(self, market, alice_asset):
        assert market.transfer_asset(ALICE, "1", BOB).error == ErrorCode.INVALID_PARAMS
        assert market.transfer_asset(ALICE, True, BOB).error == ErrorCode.INVALID_PARAMS

    def test_transfer_to_self_is_invalid_params(self, market, alice_asset):
        result = market.transfer_asset(ALICE, alice_asset, ALICE)
        assert result.error == ErrorCode.INVALID_PARAMS
        assert market.get_owner(alice_asset).value == ALICE

    def test_transfer_to_admin_is_invalid_params(self, market, alice_asset):
        """The administrator can never receive an asset by direct transfer."""
        result = market.transfer_asset(ALICE, alice_asset, ADMIN)
        assert result.error == ErrorCode.INVALID_PARAMS
        assert result.error != ErrorCode.SELF_TRANSFER

    def test_recipient_checks_precede_ownership_check(self, market, alice_asset):
        """A non-owner sending to the admin gets INVALID_PARAMS, not NOT_AUTHORIZED."""
        assert market.transfer_asset(BOB, alice_asset, ADMIN).error == ErrorCode.INVALID_PARAMS
        assert market.transfer_asset(BOB, alice_asset, BOB).error == ErrorCode.INVALID_PARAMS

    def test_non_owner_not_authorized(self, market, alice_asset):
        result = market.transfer_asset(BOB, alice_asset, CAROL)
        assert result.error == ErrorCode.NOT_AUTHORIZED

    @pytest.mark.parametrize("caller", [ALICE, BOB, ADMIN])
    def test_non_transferable_always_not_authorized(self, market, caller):
        asset_id = market.create_asset(ALICE, "soulbound", False).unwrap()
        result = market.transfer_asset(caller, asset_id, CAROL)
        assert result.error == ErrorCode.NOT_AUTHORIZED
        assert market.get_owner(asset_id).value == ALICE

    def test_new_owner_can_transfer_onwards(self, market, alice_asset):
        market.transfer_asset(ALICE, alice_asset, BOB).unwrap()
        assert market.transfer_asset(ALICE, alice_asset, CAROL).error == ErrorCode.NOT_AUTHORIZED
        assert market.transfer_asset(BOB, alice_asset, CAROL).ok
        assert market.get_owner(alice_asset).value == CAROL

    def test_transfer_back_to_previous_owner(self, market, alice_asset):
        market.transfer_asset(ALICE, alice_asset, BOB).unwrap()
        assert market.transfer_asset(BOB, alice_asset, ALICE).ok

    def test_empty_recipient_is_invalid_params(self, market, alice_asset):
        assert market.transfer_asset(ALICE, alice_asset, "").error == ErrorCode.INVALID_PARAMS

    def test_transfer_leaves_listing_in_place(self, market, alice_asset):
        """Listings are not cleaned up on transfer; they go stale instead."""
        market.list_asset(ALICE, alice_asset, 500).unwrap()
        market.transfer_asset(ALICE, alice_asset, BOB).unwrap()
        listing = market.get_listing(alice_asset)
        assert listing is not None
        assert listing.seller == ALICE


# =============================================================================
# LOOKUPS
# =============================================================================

class TestLookups:
    """Pure lookups."""

    def test_get_asset_absent(self, market):
        assert market.get_asset(1) is None
        assert market.get_asset("1") is None

    def test_get_owner_missing_is_asset_not_found(self, market):
        result = market.get_owner(42)
        assert not result.ok
        assert result.error == ErrorCode.ASSET_NOT_FOUND

    def test_lookups_do_not_mutate(self, market, alice_asset):
        before = market.snapshot()
        market.get_asset(alice_asset)
        market.get_owner(alice_asset)
        market.get_owner(99)
        market.get_listing(alice_asset)
        market.get_owner_asset_count(ALICE)
        assert market.snapshot() == before
