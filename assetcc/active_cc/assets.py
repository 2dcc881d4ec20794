from contextlib import contextmanager

from assetcc.lib import *


@contextmanager
def world_state(action, key):
    # Errors from the store that aren't already ours are reported as StoreError
    try:
        yield
    except ChaincodeError:
        raise
    except Exception as e:
        raise StoreError("failed to %s world state at %s: %s" % (action, key, e)) from e


def asset_exists(ctx, id):
    id = parse_key('id', id)
    with world_state('read from', id):
        data = ctx.get_stub().get_state(id)
    return data is not None


def read_asset(ctx, id):
    id = parse_key('id', id)
    with world_state('read from', id):
        data = ctx.get_stub().get_state(id)
    if data is None:
        raise NotFound("the asset %s does not exist" % id)
    return Asset.decode(data, id)


def write_asset(ctx, id, asset):
    try:
        data = asset.encode()
    except (EncodeError, TypeError, ValueError) as e:
        raise EncodeError("cannot encode asset %s: %s" % (id, e))
    with world_state('put to', id):
        ctx.get_stub().put_state(id, data)


def delete_asset(ctx, id):
    if not asset_exists(ctx, id):
        raise NotFound("the asset %s does not exist" % id)
    with world_state('delete from', id):
        ctx.get_stub().del_state(id)


def init_ledger(ctx, id, count):
    id = parse_key('id', id)
    count = parse_amount('count', count)
    asset = Asset(id + "-0", id, count, "0")
    if ctx.options.get('strict_init') and asset_exists(ctx, asset.id):
        raise AlreadyExists("the asset %s already exists" % asset.id)
    write_asset(ctx, asset.id, asset)


def transfer_asset(ctx, id, new_owner_id, amount):
    """
    Move `amount` units of the asset at `id` to a new record owned by
    `new_owner_id`, keyed "<name>-<new_owner_id>".

    The new record's name is the source id. If that owner already holds
    a record under the derived key it is replaced, not added to.
    """
    new_owner_id = parse_key('new_owner_id', new_owner_id)
    amount = parse_amount('amount', amount)
    asset = read_asset(ctx, id)

    if asset.count < amount:
        raise InsufficientQuantity("transfer: asset %s has %s units, cannot transfer %s" %
                                   (id, asset.count, amount))

    transferred = Asset(asset.name + "-" + new_owner_id, id, amount, new_owner_id)
    if transferred.id == id:
        raise InvalidArgument("transfer: asset %s is already held by %s" % (id, new_owner_id))
    asset.count -= amount

    write_asset(ctx, id, asset)
    write_asset(ctx, transferred.id, transferred)


def get_all_assets(ctx):
    assets = []
    # empty bounds scan the whole namespace
    with world_state('scan', 'range ("", "")'):
        cursor = ctx.get_stub().get_state_by_range("", "")
    try:
        while True:
            with world_state('scan', 'range ("", "")'):
                if not cursor.has_next():
                    break
                kv = cursor.next()
            assets.append(Asset.decode(kv.value, kv.key))
    finally:
        cursor.close()
    return assets


def read_history(ctx, id):
    """
    All values ever written under `id`, oldest first. Deletes leave no
    value and are skipped. A key without history gives an empty list.
    """
    id = parse_key('id', id)
    assets = []
    with world_state('read history from', id):
        cursor = ctx.get_stub().get_history_for_key(id)
    if cursor is None:
        return assets
    try:
        while True:
            with world_state('read history from', id):
                if not cursor.has_next():
                    break
                mod = cursor.next()
            if mod.is_delete:
                continue
            assets.append(Asset.decode(mod.value, id))
    finally:
        cursor.close()
    return assets


info = {"name": "assets",
        "functions": {"init": init_ledger,
                      "read": read_asset,
                      "exists": asset_exists,
                      "delete": delete_asset,
                      "transfer": transfer_asset,
                      "list": get_all_assets,
                      "history": read_history},
        "options": {"strict_init": False},
        "help": {"init": "assets init <id> <count>",
                 "read": "assets read <id>",
                 "exists": "assets exists <id>",
                 "delete": "assets delete <id>",
                 "transfer": "assets transfer <id> <new_owner_id> <amount>",
                 "list": "assets list",
                 "history": "assets history <id>"}
        }
