# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import os
from typing import Callable, List
from multiqueue.config import TuningConfig
from multiqueue.outcome import Outcome, SET, SKIPPED, FAILED
from multiqueue.sysfs import sorted_glob
from multiqueue.task.ethtool import QueryChannelsTask, SetCombinedChannelsTask, find_ethtool, is_decimal_int, \
    parse_max_combined
from multiqueue.task.generic import BaseTask, TaskResult, run_task

# ======================================================================================================================
# Device Discovery
# ======================================================================================================================


def virtio_net_devices(config: TuningConfig) -> List[str]:
    """Lists the virtio device directories bound to the virtio_net driver."""
    pattern: str = os.path.join(config.virtio_net_driver_dir(), config.virtio_device_glob())
    return [path for path in sorted_glob(pattern) if os.path.isdir(path)]


def network_interfaces(device_dir: str) -> List[str]:
    """Lists the names of the network interfaces exposed by one virtio device."""
    return [os.path.basename(path) for path in sorted_glob(os.path.join(device_dir, "net", "*"))]

# ======================================================================================================================
# Multi-Queue Enabler
# ======================================================================================================================


def enable_interface(ethtool: str, iface: str, runner: Callable[[BaseTask], TaskResult]) -> Outcome:
    query: TaskResult = runner(QueryChannelsTask(ethtool, iface))
    if not query.succeeded():
        errormsg: str = (query.stderr or query.stdout).strip()
        return Outcome(SKIPPED, f"ethtool says that {iface} does not support virtionet multiqueue: {errormsg}.")

    max_channels: str = parse_max_combined(query.stdout)
    if not is_decimal_int(max_channels):
        return Outcome(SKIPPED, f"ethtool reports no numeric combined channel maximum for {iface}: {max_channels}.")

    nchannels: int = int(max_channels)
    if nchannels <= 1:
        return Outcome(SKIPPED, f"{iface} supports {nchannels} combined channel(s), leaving it unchanged.")

    result: TaskResult = runner(SetCombinedChannelsTask(ethtool, iface, nchannels))
    if result.succeeded():
        return Outcome(SET, f"Set channels for {iface} to {nchannels}.")
    return Outcome(FAILED, f"Could not set channels for {iface} to {nchannels}.")


def enable_multiqueue(config: TuningConfig, runner: Callable[[BaseTask], TaskResult] = run_task) -> List[Outcome]:
    """Requests the maximum number of combined channels on every virtio-net interface."""
    ethtool: str = find_ethtool(config.ethtool())
    if ethtool is None:
        return [Outcome(SKIPPED, "ethtool not found: cannot configure virtionet multiqueue.")]

    outcomes: List[Outcome] = []
    for device_dir in virtio_net_devices(config):
        for iface in network_interfaces(device_dir):
            try:
                outcomes.append(enable_interface(ethtool, iface, runner))
            except (OSError, ValueError) as e:
                outcomes.append(Outcome(FAILED, f"Could not run ethtool for {iface}: {e}."))
    return outcomes
