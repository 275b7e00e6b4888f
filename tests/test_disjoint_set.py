import pytest
import sys
import os

# Add project root to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from disjoint_set import UnionFind


def test_singletons():
    uf = UnionFind(4)
    assert uf.num_sets() == 4
    assert all(uf.find(i) == i for i in range(4))
    assert not uf.connected(0, 1)


def test_union_merges_and_reports():
    uf = UnionFind(6)
    assert uf.union(0, 1)
    assert uf.union(2, 3)
    assert uf.union(1, 3)
    assert not uf.union(0, 2)
    assert uf.connected(0, 3)
    assert not uf.connected(0, 4)
    assert uf.component_size(2) == 4
    assert uf.num_sets() == 3


def test_long_chain_compresses():
    n = 2000
    uf = UnionFind(n)
    for i in range(n - 1):
        uf.union(i, i + 1)
    root = uf.find(0)
    assert all(uf.find(i) == root for i in range(n))
    assert uf.component_size(n - 1) == n


def test_empty_and_negative():
    assert UnionFind(0).num_sets() == 0
    with pytest.raises(ValueError):
        UnionFind(-1)
