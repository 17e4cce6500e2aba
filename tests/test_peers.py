import ipaddress

import pytest

from mpnode.peers import Peer, PeerAddress, PeerManager

A = PeerAddress("123.234.123.120", 8765)
B = PeerAddress("123.234.123.121", 8765)
C = PeerAddress("123.234.123.122", 8765)
SELF = PeerAddress("123.234.123.200", 8765)


def make(now=100, threshold=50, bootstrap=(A, B)):
    return PeerManager(SELF, list(bootstrap), now, threshold)


def test_address_normalises_ip_and_formats():
    assert A.ip == ipaddress.ip_address("123.234.123.120")
    assert str(A) == "123.234.123.120:8765"
    assert str(PeerAddress("::1", 80)) == "[::1]:80"


def test_invalid_port_rejected():
    with pytest.raises(ValueError):
        PeerAddress("10.0.0.1", 70000)


def test_bootstrap_are_candidates():
    pm = make()
    assert set(pm.random_candidates(10)) == {A, B}
    assert pm.get_peers() == []


def test_random_candidates_limited_by_count():
    pm = make()
    chosen = pm.random_candidates(1)
    assert len(chosen) == 1
    assert chosen[0] in {A, B}


def test_refresh_drops_old_candidates():
    pm = make(now=100, threshold=50)
    pm.add_candidate(140, C)
    pm.refresh(150)
    assert pm.random_candidates(10) == [C]


def test_refresh_keeps_young_candidates():
    pm = make(now=100, threshold=50)
    pm.refresh(149)
    assert set(pm.random_candidates(10)) == {A, B}


def test_add_peer_removes_candidate():
    pm = make()
    pm.add_peer(Peer(A, height=3))
    assert pm.get_peers() == [Peer(A, height=3)]
    assert pm.random_candidates(10) == [B]


def test_self_is_never_added():
    pm = make(bootstrap=())
    pm.add_peer(Peer(SELF))
    pm.add_candidate(100, SELF)
    assert pm.get_peers() == []
    assert pm.random_candidates(10) == []


def test_add_candidate_ignored_for_active_peer():
    pm = make(bootstrap=())
    pm.add_peer(Peer(A))
    pm.add_candidate(100, A)
    assert pm.random_candidates(10) == []
    assert pm.get_peers() == [Peer(A)]


def test_punishment_removes_and_expires():
    pm = make()
    pm.add_peer(Peer(A))
    pm.punish_ip_for(100, A.ip, 10)
    assert pm.get_peers() == []
    assert pm.is_ip_punished(105, "123.234.123.120")
    assert not pm.is_ip_punished(110, A.ip)
    assert pm.random_candidates(10) == [B]


def test_refresh_lifts_punishments():
    pm = make()
    pm.punish_ip_for(100, B.ip, 10)
    pm.refresh(111)
    assert not pm.is_ip_punished(105, B.ip)


def test_unknown_ip_not_punished():
    assert not make().is_ip_punished(0, "10.0.0.1")


def test_mark_as_candidate_moves_peer():
    pm = make(bootstrap=())
    pm.add_peer(Peer(A))
    pm.mark_as_candidate(100, A)
    assert pm.get_peers() == []
    assert pm.random_candidates(10) == [A]


def test_mark_as_candidate_ignores_non_peer():
    pm = make(bootstrap=())
    pm.mark_as_candidate(100, C)
    assert pm.random_candidates(10) == []


def test_random_peers_distinct_subset():
    pm = make(bootstrap=())
    peers = [Peer(A), Peer(B), Peer(C)]
    for p in peers:
        pm.add_peer(p)
    chosen = pm.random_peers(2)
    assert len(chosen) == 2
    assert len(set(chosen)) == 2
    assert set(chosen) <= set(peers)
    assert set(pm.random_peers(10)) == set(peers)