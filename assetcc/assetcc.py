from loguru import logger

from assetcc.lib import *


class TxContext:
    """
    What an operation gets for one invocation: the store handle of the
    running transaction and the module options.
    """
    def __init__(self, stub, options):
        self.stub = stub
        self.options = options

    def get_stub(self):
        return self.stub


class CCApp:
    def __init__(self, info, chain, **options):
        self.info = info
        self.chain = chain
        self.options = dict(info.get('options', {}))
        for name in options:
            if name not in self.options:
                raise TypeError("Unknown option for %s: %s" % (info.get('name'), name))
        self.options.update(options)

    def __call__(self, *args, **kwargs):
        return self.invoke(*args, **kwargs)

    def get_function(self, name):
        try:
            return self.info['functions'][name]
        except KeyError:
            raise InvalidArgument("Invalid function: %s" % name)

    # Run one named operation in its own transaction.
    # The write set is committed only if the operation returns.
    def invoke(self, name, *args):
        func = self.get_function(name)
        stub = self.chain.begin(name, args)
        logger.debug("invoke {}{} in tx {}", name, args, stub.tx_id)
        try:
            result = func(TxContext(stub, self.options), *args)
        except ChaincodeError as e:
            logger.warning("{} failed: {}", name, e)
            self.chain.abort(stub)
            raise
        except Exception:
            self.chain.abort(stub)
            raise
        try:
            self.chain.commit(stub)
        except ChaincodeError as e:
            logger.warning("{} failed to commit: {}", name, e)
            raise
        return result
