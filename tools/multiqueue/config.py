# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import copy
import os
import yaml

# ======================================================================================================================
# Defaults
# ======================================================================================================================

DEFAULTS: dict = {
    "irq_dir": "/proc/irq",
    "virtio_net_driver_dir": "/sys/bus/virtio/drivers/virtio_net",
    "virtio_device_glob": "virtio*",
    "net_dir": "/sys/class/net",
    "xps_interface_glob": "e*",
    "max_xps_cpus": 63,
    "ethtool": "ethtool",
    "legacy_affinity": "01",
}

# Keys holding absolute pseudo-filesystem paths, re-based by with_root().
PATH_KEYS: tuple = ("irq_dir", "virtio_net_driver_dir", "net_dir")

# Keys whose overrides must be strings; "01" has to be quoted in YAML.
STRING_KEYS: tuple = PATH_KEYS + ("virtio_device_glob", "xps_interface_glob", "ethtool", "legacy_affinity")

# ======================================================================================================================
# Configuration
# ======================================================================================================================


class TuningConfig:
    '''Paths and limits used by the tuning passes, optionally overridden from YAML.'''

    def __init__(self, yaml_str: str = None):
        self.settings: dict = copy.deepcopy(DEFAULTS)
        if yaml_str is not None:
            self.__validate_input(yaml_str)
            overrides = yaml.safe_load(yaml_str)
            self.__validate_overrides(overrides)
            self.settings.update(overrides)

    @classmethod
    def from_file(cls, path: str) -> "TuningConfig":
        with open(path, "r") as f:
            yaml_str = f.read()
        return cls(yaml_str)

    def __validate_input(self, yaml_str: str):
        if yaml_str == "":
            raise Exception("yaml configuration is empty!")

    def __validate_overrides(self, overrides):
        if not isinstance(overrides, dict):
            raise Exception("yaml configuration must be a mapping!")
        for key in overrides:
            if key not in DEFAULTS:
                raise KeyError(f"Unknown configuration key: {key}")
        for key in STRING_KEYS:
            if key in overrides and not isinstance(overrides[key], str):
                raise ValueError(f"{key} must be a string: {overrides[key]!r}")
        max_cpus = overrides.get("max_xps_cpus", DEFAULTS["max_xps_cpus"])
        if not isinstance(max_cpus, int) or isinstance(max_cpus, bool) or max_cpus < 0:
            raise ValueError(f"max_xps_cpus must be a non-negative integer: {max_cpus}")

    def with_root(self, root: str) -> "TuningConfig":
        '''Returns a copy whose pseudo-filesystem paths live under root.'''
        config = TuningConfig()
        config.settings = copy.deepcopy(self.settings)
        for key in PATH_KEYS:
            config.settings[key] = os.path.join(root, config.settings[key].lstrip("/"))
        return config

    def irq_dir(self) -> str:
        return self.settings["irq_dir"]

    def virtio_net_driver_dir(self) -> str:
        return self.settings["virtio_net_driver_dir"]

    def virtio_device_glob(self) -> str:
        return self.settings["virtio_device_glob"]

    def net_dir(self) -> str:
        return self.settings["net_dir"]

    def xps_interface_glob(self) -> str:
        return self.settings["xps_interface_glob"]

    def max_xps_cpus(self) -> int:
        return self.settings["max_xps_cpus"]

    def ethtool(self) -> str:
        return self.settings["ethtool"]

    def legacy_affinity(self) -> str:
        return str(self.settings["legacy_affinity"])
