"""
Tests for the sqlite store.
"""

from app.auctioneer.database import AuctioneerDatabase
from app.auctioneer.models import AuctionEntry, AuctionType, FilledAuctionEntry, PriceEntry, UserEntry

BIG_AMOUNT = 2**70 + 1


def filled_entry(tx_hash, timestamp):
    return FilledAuctionEntry(
        tx_hash=tx_hash,
        filler="GFILLER1",
        user_id="USER1",
        auction_type=AuctionType.LIQUIDATION,
        bid={"USDC": BIG_AMOUNT},
        bid_total=100.0,
        lot={"ETH": 1},
        lot_total=120.0,
        est_profit=20.0,
        fill_block=250,
        timestamp=timestamp,
    )


def test_user_entries(db):
    entry = UserEntry("USER1", 1.05, {"ETH": BIG_AMOUNT}, {"USDC": 100}, 10)

    db.set_user_entry(entry)
    assert db.get_user_entry("USER1") == entry

    entry.health_factor = 0.9
    db.set_user_entry(entry)
    assert db.get_user_entry("USER1").health_factor == 0.9

    db.delete_user_entry("USER1")
    assert db.get_user_entry("USER1") is None


def test_user_entries_under_health_factor(db):
    db.set_user_entry(UserEntry("USER1", 1.1, {}, {"USDC": 1}, 1))
    db.set_user_entry(UserEntry("USER2", 0.95, {}, {"USDC": 1}, 1))
    db.set_user_entry(UserEntry("USER3", 1.2, {}, {"USDC": 1}, 1))

    users = db.get_user_entries_under_health_factor(1.2)

    assert [user.user_id for user in users] == ["USER2", "USER1"]


def test_user_entries_by_asset(db):
    db.set_user_entry(UserEntry("USER1", 1.1, {"ETH": 1}, {"USDC": 1}, 1))
    db.set_user_entry(UserEntry("USER2", 1.1, {"USDC": 1}, {"ETH": 1}, 1))

    assert [user.user_id for user in db.get_user_entries_with_collateral("ETH")] == ["USER1"]
    assert [user.user_id for user in db.get_user_entries_with_liability("ETH")] == ["USER2"]
    assert db.get_user_entries_with_collateral("BTC") == []


def test_auction_entries(db):
    liquidation = AuctionEntry("USER1", AuctionType.LIQUIDATION, "GFILLER1", 120, 0, 120)
    interest = AuctionEntry("BACKSTOP", AuctionType.INTEREST, "GFILLER1", 100, 300, 100)
    db.set_auction_entry(liquidation)
    db.set_auction_entry(interest)

    assert db.get_auction_entry("USER1", AuctionType.LIQUIDATION) == liquidation
    assert db.get_auction_entry("USER1", AuctionType.BAD_DEBT) is None
    assert db.get_all_auction_entries() == [interest, liquidation]

    liquidation.fill_block = 260
    db.set_auction_entry(liquidation)
    assert db.get_auction_entry("USER1", AuctionType.LIQUIDATION).fill_block == 260

    db.delete_auction_entry("USER1", AuctionType.LIQUIDATION)
    db.delete_auction_entry("USER1", AuctionType.LIQUIDATION)
    assert db.get_all_auction_entries() == [interest]


def test_filled_auction_entries_newest_first(db):
    db.set_filled_auction_entry(filled_entry("tx1", 1000))
    db.set_filled_auction_entry(filled_entry("tx2", 3000))
    db.set_filled_auction_entry(filled_entry("tx3", 2000))

    entries = db.get_filled_auction_entries(limit=2)

    assert [entry.tx_hash for entry in entries] == ["tx2", "tx3"]
    assert entries[0].bid == {"USDC": BIG_AMOUNT}
    assert entries[0].auction_type == AuctionType.LIQUIDATION


def test_price_entries(db):
    db.set_price_entries([PriceEntry("ETH", 2000.0, 1), PriceEntry("LP", 0.5, 1)])
    db.set_price_entries([PriceEntry("ETH", 2100.0, 2)])

    assert db.get_price_entry("ETH") == PriceEntry("ETH", 2100.0, 2)
    assert db.get_price_entry("LP").price == 0.5
    assert db.get_price_entry("BTC") is None


def test_file_database_persists(tmp_path):
    path = str(tmp_path / "data" / "testnet_auctioneer.sqlite")
    entry = AuctionEntry("USER1", AuctionType.LIQUIDATION, "GFILLER1", 120, 0, 120)

    database = AuctioneerDatabase(path)
    database.set_auction_entry(entry)
    database.close()

    reopened = AuctioneerDatabase(path)
    try:
        assert reopened.get_auction_entry("USER1", AuctionType.LIQUIDATION) == entry
    finally:
        reopened.close()
