from assetcc.lib import *
from assetcc.assetcc import *
from assetcc.chain import *
