import pytest

from mpnode.wallet import Wallet, WalletError

PHRASE = " ".join(["abandon"] * 11 + ["about"])


def test_nonces_start_unknown():
    w = Wallet(PHRASE)
    assert w.new_r_nonce() is None
    assert w.new_z_nonce(0) is None


def test_regular_nonce_increments():
    w = Wallet(PHRASE)
    w.add_rsend(4)
    assert w.new_r_nonce() == 5
    w.add_deposit(9)
    assert w.new_r_nonce() == 10


def test_mpn_nonces():
    w = Wallet(PHRASE)
    w.add_mpn_index(3)
    assert w.mpn_indices() == [3]
    assert w.new_z_nonce(3) is None
    w.add_zsend(3, 7)
    assert w.new_z_nonce(3) == 8
    w.add_withdraw(5, 1)
    assert sorted(w.mpn_indices()) == [3, 5]
    assert w.new_z_nonce(5) == 2


def test_reset_keeps_indices():
    w = Wallet(PHRASE)
    w.add_rsend(1)
    w.add_zsend(2, 3)
    w.reset()
    assert w.new_r_nonce() is None
    assert w.mpn_indices() == [2]
    assert w.new_z_nonce(2) is None


def test_seed_matches_bip39_vector():
    seed = Wallet(PHRASE).seed()
    assert len(seed) == 64
    assert seed.hex() == (
        "5eb00bbddcf069084889a8ab9155568165f5c453ccb85e70811aaed6f6da5fc1"
        "9a5ac40b389cd370d086206dec8aa6c43daea6690f20ad3d8d48b2d2ce9e38e4"
    )


def test_save_open_round_trip(tmp_path):
    w = Wallet(PHRASE)
    w.add_rsend(11)
    w.add_zsend(4, 6)
    w.add_mpn_index(8)
    path = tmp_path / "wallet"
    w.save(path)
    assert Wallet.open(path) == w


def test_open_missing_returns_none(tmp_path):
    assert Wallet.open(tmp_path / "absent") is None


def test_open_corrupted_raises(tmp_path):
    path = tmp_path / "wallet"
    path.write_bytes(b"\x00\x01garbage")
    with pytest.raises(WalletError):
        Wallet.open(path)


def test_open_wrong_shape_raises(tmp_path):
    path = tmp_path / "wallet"
    path.write_text('{"mnemonic": "x", "tx_nonce": "one", "mpn_nonces": {}}')
    with pytest.raises(WalletError):
        Wallet.open(path)


def test_save_to_unwritable_location_raises(tmp_path):
    with pytest.raises(WalletError):
        Wallet(PHRASE).save(tmp_path / "missing" / "wallet")