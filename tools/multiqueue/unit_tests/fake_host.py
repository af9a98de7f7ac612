# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import os
from multiqueue.config import TuningConfig
from multiqueue.task.generic import TaskResult


def ethtool_channels_output(iface: str, max_combined: str, current_combined: str = "1") -> str:
    return f"""Channel parameters for {iface}:
Pre-set maximums:
RX:\t\tn/a
TX:\t\tn/a
Other:\t\tn/a
Combined:\t{max_combined}
Current hardware settings:
RX:\t\tn/a
TX:\t\tn/a
Other:\t\tn/a
Combined:\t{current_combined}
"""


class FakeEthtool:
    '''Stands in for the ethtool binary, recording every command it is asked to run.'''

    def __init__(self, max_combined: dict = None, unsupported: tuple = (), failing_set: tuple = ()):
        self.max_combined = max_combined or {}
        self.unsupported = unsupported
        self.failing_set = failing_set
        self.calls = []

    def __call__(self, task) -> TaskResult:
        self.calls.append(task.cmd[1:])
        flag, iface = task.cmd[1], task.cmd[2]
        if flag == "-l":
            if iface in self.unsupported:
                return TaskResult(1, "", "netlink error: Operation not supported")
            return TaskResult(0, ethtool_channels_output(iface, self.max_combined.get(iface, "1")), "")
        if iface in self.failing_set:
            return TaskResult(1, "", "netlink error: Invalid argument")
        return TaskResult(0, "", "")

    def set_calls(self) -> list:
        return [call for call in self.calls if call[0] == "-L"]


class FakeHost:
    '''A throwaway /proc and /sys tree rooted in a temporary directory.'''

    def __init__(self, root):
        self.root = str(root)
        self.config = TuningConfig().with_root(self.root)

    def __path(self, *parts) -> str:
        return os.path.join(*parts)

    def __write(self, path: str, value: str):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            f.write(value)

    def add_virtio_device(self, device: str, ifaces: list = ()) -> str:
        device_dir = self.__path(self.config.virtio_net_driver_dir(), device)
        os.makedirs(device_dir, exist_ok=True)
        for iface in ifaces:
            os.makedirs(self.__path(device_dir, "net", iface), exist_ok=True)
        return device_dir

    def add_irq(self, irq: int, handlers: list = (), affinity_list: str = "0-3", hint: str = None,
                affinity: str = "f") -> str:
        irq_path = self.__path(self.config.irq_dir(), str(irq))
        os.makedirs(irq_path, exist_ok=True)
        for handler in handlers:
            os.makedirs(self.__path(irq_path, handler), exist_ok=True)
        if affinity_list is not None:
            self.__write(self.__path(irq_path, "smp_affinity_list"), affinity_list + "\n")
        if affinity is not None:
            self.__write(self.__path(irq_path, "smp_affinity"), affinity + "\n")
        if hint is not None:
            self.__write(self.__path(irq_path, "affinity_hint"), hint + "\n")
        return irq_path

    def add_tx_queues(self, iface: str, nqueues: int) -> list:
        paths = []
        for queue in range(nqueues):
            path = self.__path(self.config.net_dir(), iface, "queues", f"tx-{queue}", "xps_cpus")
            self.__write(path, "00000000\n")
            paths.append(path)
        return paths

    def read(self, path: str) -> str:
        with open(path, "r") as f:
            return f.read().strip()

    def irq_file(self, irq: int, name: str) -> str:
        return self.__path(self.config.irq_dir(), str(irq), name)

    def snapshot(self) -> dict:
        contents = {}
        for dirpath, _, filenames in os.walk(self.root):
            for filename in filenames:
                path = os.path.join(dirpath, filename)
                contents[path] = self.read(path)
        return contents
