from assetcc import *
import json
import traceback

from loguru import logger

import assetcc.active_cc.assets as assets


# Contract modules that can be dispatched on this chain. A module that
# is not listed here cannot be invoked.
cc_info = {"assets": assets.info}


def help_info(specific=None):
    all_help = {}
    for i in cc_info:
        if i == specific:
            return(json.dumps(cc_info[i]['help']))
        all_help[i] = cc_info[i]['help']
    return(json.dumps(all_help))


def cc_cli(chain, code, **options):
    """
    Dispatch a JSON encoded call `[module, function, *args]` and return
    a JSON response: {"success": result} or {"error": [lines]}.

    An unknown module or function returns the help text instead.
    """
    try:
        code = json.loads(code)
        if isinstance(code, list) and code and code[0] in cc_info:
            info = cc_info[code[0]]
            if len(code) > 1 and code[1] in info['functions']:
                app = CCApp(info, chain, **options)
                return rpc_success(app.invoke(code[1], *code[2:]))
            else:
                return(help_info(code[0]))
        else:
            return help_info()
    # ChaincodeError messages are meant for the caller
    except ChaincodeError as e:
        return rpc_error(e)
    except Exception:
        logger.exception("unexpected error dispatching {}", code)
        return rpc_error(traceback.format_exc())
