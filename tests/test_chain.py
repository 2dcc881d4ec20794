import pytest

from assetcc.chain import MemoryChain
from assetcc.lib import KV, StoreError


def commit_writes(chain, writes):
    stub = chain.begin()
    for (k, v) in writes.items():
        if v is None:
            stub.del_state(k)
        else:
            stub.put_state(k, v)
    chain.commit(stub)
    return stub


def test_reads_come_from_snapshot():
    chain = MemoryChain()
    stub = chain.begin()
    stub.put_state("a", b"1")
    # pending writes are not visible to the transaction itself
    assert stub.get_state("a") is None
    chain.commit(stub)
    assert chain.begin().get_state("a") == b"1"

def test_snapshot_ignores_later_commits():
    chain = MemoryChain()
    stub = chain.begin()
    commit_writes(chain, {"a": b"1"})
    assert stub.get_state("a") is None
    assert list(stub.get_history_for_key("a")) == []

def test_abort_discards_writes():
    chain = MemoryChain()
    stub = chain.begin()
    stub.put_state("a", b"1")
    chain.abort(stub)
    assert chain.begin().get_state("a") is None
    assert chain.height == 0

def test_commit_applies_deletes():
    chain = MemoryChain()
    commit_writes(chain, {"a": b"1", "b": b"2"})
    commit_writes(chain, {"a": None})
    stub = chain.begin()
    assert stub.get_state("a") is None
    assert stub.get_state("b") == b"2"
    assert chain.height == 2

def test_range_scan_in_key_order():
    chain = MemoryChain()
    commit_writes(chain, {"b": b"2", "c": b"3"})
    commit_writes(chain, {"a": b"1"})
    stub = chain.begin()
    assert list(stub.get_state_by_range("", "")) == [KV("a", b"1"), KV("b", b"2"), KV("c", b"3")]
    assert [kv.key for kv in stub.get_state_by_range("b", "")] == ["b", "c"]
    assert [kv.key for kv in stub.get_state_by_range("", "b")] == ["a"]
    assert [kv.key for kv in stub.get_state_by_range("a", "c")] == ["a", "b"]

def test_history_keeps_deleted_values():
    chain = MemoryChain()
    commit_writes(chain, {"a": b"1"})
    commit_writes(chain, {"a": b"2"})
    commit_writes(chain, {"a": None})
    mods = list(chain.begin().get_history_for_key("a"))
    assert [m.value for m in mods] == [b"1", b"2", None]
    assert [m.is_delete for m in mods] == [False, False, True]
    assert len(set(m.tx_id for m in mods)) == 3

def test_history_of_unknown_key():
    chain = MemoryChain()
    assert list(chain.begin().get_history_for_key("nothing")) == []


def test_cursor():
    chain = MemoryChain()
    commit_writes(chain, {"a": b"1"})
    stub = chain.begin()
    cursor = stub.get_state_by_range("", "")
    assert stub.open_cursors == [cursor]
    assert cursor.has_next()
    assert cursor.next() == KV("a", b"1")
    assert not cursor.has_next()
    with pytest.raises(StoreError):
        cursor.next()
    cursor.close()
    assert stub.open_cursors == []
    with pytest.raises(StoreError):
        cursor.has_next()

def test_cursor_closed_by_with():
    chain = MemoryChain()
    stub = chain.begin()
    with pytest.raises(KeyError):
        with stub.get_history_for_key("a"):
            raise KeyError("a")
    assert len(stub.cursors) == 1
    assert stub.open_cursors == []


def test_read_conflict():
    chain = MemoryChain()
    commit_writes(chain, {"a": b"1"})
    stub = chain.begin()
    stub.get_state("a")
    stub.put_state("b", b"from a=1")
    commit_writes(chain, {"a": b"2"})
    with pytest.raises(StoreError) as e:
        chain.commit(stub)
    assert "a" in str(e.value)
    assert chain.begin().get_state("b") is None

def test_range_read_conflict():
    chain = MemoryChain()
    commit_writes(chain, {"a": b"1"})
    stub = chain.begin()
    list(stub.get_state_by_range("", ""))
    stub.put_state("b", b"x")
    commit_writes(chain, {"a": None})
    with pytest.raises(StoreError):
        chain.commit(stub)

def test_unrelated_commit_does_not_conflict():
    chain = MemoryChain()
    commit_writes(chain, {"a": b"1"})
    stub = chain.begin()
    stub.get_state("a")
    stub.put_state("a", b"2")
    commit_writes(chain, {"z": b"1"})
    chain.commit(stub)
    assert chain.begin().get_state("a") == b"2"


def test_finished_stub():
    chain = MemoryChain()
    stub = commit_writes(chain, {"a": b"1"})
    with pytest.raises(StoreError):
        stub.get_state("a")
    with pytest.raises(StoreError):
        stub.put_state("a", b"2")
    with pytest.raises(StoreError):
        chain.commit(stub)
    with pytest.raises(StoreError):
        chain.abort(stub)

def test_invalid_put():
    stub = MemoryChain().begin()
    with pytest.raises(StoreError):
        stub.put_state("", b"1")
    with pytest.raises(StoreError):
        stub.put_state("a", "1")
    with pytest.raises(StoreError):
        stub.del_state(None)

def test_tx_ids_are_unique():
    chain = MemoryChain()
    assert chain.begin("init", ("a", 1)).get_tx_id() != chain.begin("init", ("a", 1)).get_tx_id()
