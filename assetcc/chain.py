import hashlib
import json
import threading
import time

from loguru import logger

from assetcc.lib import KV, KeyModification, StoreError


class QueryIterator:
    """
    Cursor over the results of a range scan or a history query.

    Offers the host ledger's has_next / next / close calls, and can also
    be iterated directly. Using it as a context manager closes it on
    the way out, whatever happens inside the block.
    """

    def __init__(self, stub, results):
        self.stub = stub
        self.results = list(results)
        self.pos = 0
        self.closed = False
        stub.cursors.append(self)

    def has_next(self):
        if self.closed:
            raise StoreError("cursor is closed (tx %s)" % self.stub.tx_id)
        return self.pos < len(self.results)

    def next(self):
        if not self.has_next():
            raise StoreError("cursor is exhausted (tx %s)" % self.stub.tx_id)
        r = self.results[self.pos]
        self.pos += 1
        return r

    def close(self):
        self.closed = True

    def __iter__(self):
        return self

    def __next__(self):
        if not self.has_next():
            raise StopIteration
        return self.next()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class ChainStub:
    """
    Store handle for one transaction.

    Reads are served from the committed state as it was when the
    transaction began; the transaction's own writes are not visible
    until commit. Puts and deletes are buffered in the write set.
    """

    def __init__(self, chain, tx_id, height, timestamp):
        self.chain = chain
        self.tx_id = tx_id
        self.height = height
        self.timestamp = timestamp
        self.state = dict(chain.state)
        self.versions = dict(chain.versions)
        self.read_set = {}
        self.writes = {}
        self.cursors = []
        self.done = False

    def get_tx_id(self):
        return self.tx_id

    def get_state(self, key):
        self._check_open()
        self.read_set[key] = self.versions.get(key, 0)
        return self.state.get(key)

    def put_state(self, key, value):
        self._check_key(key)
        if type(value) != bytes:
            raise StoreError("value for %s should be bytes, got %s" % (key, type(value).__name__))
        self.writes[key] = value

    def del_state(self, key):
        self._check_key(key)
        self.writes[key] = None

    def get_state_by_range(self, start_key, end_key):
        # start inclusive, end exclusive, empty means unbounded
        self._check_open()
        keys = sorted(k for k in self.state
                      if (not start_key or k >= start_key) and (not end_key or k < end_key))
        for k in keys:
            self.read_set[k] = self.versions.get(k, 0)
        return QueryIterator(self, [KV(k, self.state[k]) for k in keys])

    def get_history_for_key(self, key):
        self._check_open()
        entries = self.chain.history.get(key, ())
        return QueryIterator(self, [mod for (height, mod) in entries if height <= self.height])

    @property
    def open_cursors(self):
        return [c for c in self.cursors if not c.closed]

    def finish(self):
        self._check_open()
        self.done = True

    def _check_open(self):
        if self.done:
            raise StoreError("transaction %s is already finished" % self.tx_id)

    def _check_key(self, key):
        self._check_open()
        if type(key) != str or not key:
            raise StoreError("invalid key %r: should be a non-empty string" % (key,))


class MemoryChain:
    """
    In-memory ordered key-value world state with per-key history.

    Every committed write appends to the key's history, deletes
    included, so earlier values stay readable after a delete. Commit
    validates the versions the transaction read and applies its write
    set all at once, or not at all.
    """

    def __init__(self):
        self.state = {}
        self.versions = {}
        self.history = {}
        self.height = 0
        self.nonce = 0
        self.lock = threading.Lock()

    def begin(self, name='', args=()):
        with self.lock:
            self.nonce += 1
            seed = json.dumps([self.nonce, name, [str(a) for a in args]])
            tx_id = hashlib.sha256(seed.encode()).hexdigest()
            return ChainStub(self, tx_id, self.height, time.time())

    def commit(self, stub):
        with self.lock:
            stub.finish()
            if not stub.writes:
                return
            for (key, version) in stub.read_set.items():
                if self.versions.get(key, 0) != version:
                    logger.debug("tx {} invalidated, {} changed since it was read", stub.tx_id, key)
                    raise StoreError("MVCC read conflict on key %s (tx %s)" % (key, stub.tx_id))

            self.height += 1
            for (key, value) in sorted(stub.writes.items()):
                if value is None:
                    self.state.pop(key, None)
                else:
                    self.state[key] = value
                self.versions[key] = self.versions.get(key, 0) + 1
                mod = KeyModification(stub.tx_id, value, stub.timestamp, value is None)
                self.history.setdefault(key, []).append((self.height, mod))
            logger.debug("committed tx {} at height {} ({} writes)",
                         stub.tx_id, self.height, len(stub.writes))

    def abort(self, stub):
        with self.lock:
            stub.finish()
            logger.debug("aborted tx {} ({} writes discarded)", stub.tx_id, len(stub.writes))
