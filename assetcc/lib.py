import json
from collections import namedtuple


# Value that ended up in the world state under one key, as returned by a
# range scan
KV = namedtuple('KV', ['key', 'value'])

# One entry of a key's history. Delete markers have is_delete set and no value
KeyModification = namedtuple('KeyModification', ['tx_id', 'value', 'timestamp', 'is_delete'])


MAX_COUNT = 2**64 - 1


class ChaincodeError(Exception):
    """
    Base of every error an operation reports to its caller.

    The message is meant to be shown as is, so it should name the key
    or id involved.
    """
    pass

class NotFound(ChaincodeError):
    pass

class AlreadyExists(ChaincodeError):
    pass

class DecodeError(ChaincodeError):
    pass

class EncodeError(ChaincodeError):
    pass

class StoreError(ChaincodeError):
    pass

class InsufficientQuantity(ChaincodeError):
    pass

class InvalidArgument(ChaincodeError):
    pass


class Text:
    def __init__(self, default=""):
        self.default = default

    def consume(self, name, value):
        if type(value) != str:
            raise DecodeError("field %s should be a string, got %r" % (name, value))
        return value

    def construct(self, name, value):
        if type(value) != str:
            raise EncodeError("field %s should be a string, got %r" % (name, value))
        return value


class Amount:
    def __init__(self, min=0, max=MAX_COUNT, default=0):
        self.min = min
        self.max = max
        self.default = default

    def _check(self, value):
        # bool is an int subclass, reject it explicitly
        return type(value) == int and self.min <= value <= self.max

    def consume(self, name, value):
        if not self._check(value):
            raise DecodeError("field %s should be an integer in [%s, %s], got %r" %
                              (name, self.min, self.max, value))
        return value

    def construct(self, name, value):
        if not self._check(value):
            raise EncodeError("field %s should be an integer in [%s, %s], got %r" %
                              (name, self.min, self.max, value))
        return value


class Asset:
    """
    Asset record as stored in the world state.

    The wire field names are fixed, existing ledgers hold records
    encoded with them.
    """

    # attribute -> (wire field, type)
    fields = (
        ('id', 'ID', Text()),
        ('name', 'name', Text()),
        ('count', 'count', Amount()),
        ('owner_id', 'ownerId', Text()),
    )

    def __init__(self, id, name, count, owner_id):
        self.id = id
        self.name = name
        self.count = count
        self.owner_id = owner_id

    def __eq__(self, other):
        return (type(self) == type(other) and
                (self.id, self.name, self.count, self.owner_id) ==
                (other.id, other.name, other.count, other.owner_id))

    def __repr__(self):
        return "Asset(%r, %r, %r, %r)" % (self.id, self.name, self.count, self.owner_id)

    def to_py(self):
        return {wire: t.construct(wire, getattr(self, attr))
                for (attr, wire, t) in self.fields}

    @classmethod
    def from_py(cls, obj):
        if type(obj) != dict:
            raise DecodeError("asset record should be an object, got %r" % (obj,))
        # Missing fields take their zero value and unknown ones are ignored
        kwargs = {attr: t.consume(wire, obj.get(wire, t.default))
                  for (attr, wire, t) in cls.fields}
        return cls(**kwargs)

    def encode(self):
        return json.dumps(self.to_py()).encode()

    @classmethod
    def decode(cls, data, key=None):
        try:
            obj = json.loads(data.decode())
        except (AttributeError, UnicodeDecodeError, ValueError) as e:
            raise DecodeError("cannot decode asset at %s: %s" % (key, e))
        try:
            return cls.from_py(obj)
        except DecodeError as e:
            raise DecodeError("cannot decode asset at %s: %s" % (key, e))


def parse_amount(name, value):
    """
    Coerce an operation argument to an unsigned count. Dispatched
    arguments arrive as strings.
    """
    # ASCII digits only, and no longer than the largest count
    if (type(value) == str and value.isascii() and value.isdecimal()
            and len(value) <= len(str(MAX_COUNT))):
        value = int(value)
    if type(value) != int or not 0 <= value <= MAX_COUNT:
        raise InvalidArgument("%s should be an unsigned integer, got %r" % (name, value))
    return value


def parse_key(name, value):
    if type(value) != str or not value:
        raise InvalidArgument("%s should be a non-empty string, got %r" % (name, value))
    return value


def to_py(result):
    if isinstance(result, Asset):
        return result.to_py()
    if type(result) in (list, tuple):
        return [to_py(r) for r in result]
    return result


def rpc_error(msg):
    # one line per entry so multi-line tracebacks stay readable
    msg = str(msg).split('\n')
    return(json.dumps({"error": msg}))


def rpc_success(result):
    return(json.dumps({"success": to_py(result)}))
