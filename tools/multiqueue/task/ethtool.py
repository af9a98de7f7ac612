# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import shutil
from multiqueue.task.generic import BaseTask

# ======================================================================================================================


class BaseEthtoolTask(BaseTask):
    def __init__(self, ethtool: str, args: list):
        super().__init__([ethtool] + args)


class QueryChannelsTask(BaseEthtoolTask):
    def __init__(self, ethtool: str, iface: str):
        super().__init__(ethtool, ["-l", iface])


class SetCombinedChannelsTask(BaseEthtoolTask):
    def __init__(self, ethtool: str, iface: str, nchannels: int):
        super().__init__(ethtool, ["-L", iface, "combined", str(nchannels)])

# ======================================================================================================================


def find_ethtool(ethtool: str) -> str:
    """Resolves the ethtool binary, returning None when it is not installed."""
    return shutil.which(ethtool)


def parse_max_combined(output: str) -> str:
    """Returns the raw "Combined" value of the pre-set maximums in `ethtool -l` output.

    The maximums section comes first, so the first Combined line is the one we want. The value is returned
    unparsed (it may be "n/a" on some drivers); None is returned when no Combined line exists.
    """
    for line in output.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() == "Combined":
            return value.strip()
    return None


def is_decimal_int(value: str) -> bool:
    return value is not None and value.isascii() and value.isdigit()
