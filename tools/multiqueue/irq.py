# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

# ======================================================================================================================
# Imports
# ======================================================================================================================

import os
from typing import List
from multiqueue.channels import virtio_net_devices
from multiqueue.config import TuningConfig
from multiqueue.outcome import Outcome, SET, FAILED, INFO
from multiqueue.sysfs import numeric_entries, read_value, subdirectories, write_value

# ======================================================================================================================
# Constants
# ======================================================================================================================

# Per-IRQ affinity files, see Documentation/core-api/irq/irq-affinity.rst.
SMP_AFFINITY: str = "smp_affinity"
SMP_AFFINITY_LIST: str = "smp_affinity_list"
AFFINITY_HINT: str = "affinity_hint"

# Queue directions used by virtio_net when naming MSI-X vectors.
MSIX_DIRECTIONS: tuple = ("input", "output")

# Marker only gVNIC (gve) uses when naming its notification block vectors.
NOTIFY_BLOCK_MARKER: str = "-ntfy-block."

# ======================================================================================================================
# Classification
# ======================================================================================================================


class IrqClass:
    '''Ownership of an interrupt line, derived from the handler directories below /proc/irq/<N>.'''

    def __eq__(self, other):
        return type(self) is type(other) and vars(self) == vars(other)

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{type(self).__name__}({fields})"


class Legacy(IrqClass):
    '''A single shared INTx line owned by a virtio-net device.'''

    def __init__(self, device: str):
        self.device = device


class MsixQueue(IrqClass):
    '''A per-queue MSI-X vector of a virtio-net device.'''

    def __init__(self, device: str, direction: str, index: int):
        self.device = device
        self.direction = direction
        self.index = index


class NotifyBlock(IrqClass):
    '''A gVNIC notification block vector.'''


class Unrelated(IrqClass):
    pass


def parse_msix_entry(name: str, device: str) -> MsixQueue:
    """Parses "<device>-<input|output>.<N>", returning None for any other name."""
    prefix: str = device + "-"
    if not name.startswith(prefix):
        return None
    direction, sep, index = name[len(prefix):].partition(".")
    if not sep or direction not in MSIX_DIRECTIONS:
        return None
    if not (index.isascii() and index.isdigit()):
        return None
    return MsixQueue(device, direction, int(index))


def classify_entries(names: List[str], device: str = None) -> IrqClass:
    """Classifies an IRQ from the names of its handler directories.

    With a device name, the INTx directory (named exactly after the device) takes priority over any MSI-X
    entries. MSI-X entries are only accepted when they all agree on a single queue index, which deliberately
    also admits an input/output pair sharing one vector (e.g. "virtio0-input.1" and "virtio0-output.1")
    rather than requiring exactly one match. Without a device name only the gVNIC notification block
    marker is considered.
    """
    if device is not None:
        if device in names:
            return Legacy(device)

        matches: List[MsixQueue] = []
        for name in sorted(names):
            entry = parse_msix_entry(name, device)
            if entry is not None:
                matches.append(entry)
        if len({entry.index for entry in matches}) == 1:
            return matches[0]

    if any(NOTIFY_BLOCK_MARKER in name for name in names):
        return NotifyBlock()

    return Unrelated()


def classify_irq(irq_path: str, device: str = None) -> IrqClass:
    return classify_entries(subdirectories(irq_path), device)

# ======================================================================================================================
# Affinity Setters
# ======================================================================================================================


def apply_virtio_affinity(irq_path: str, irq_class: IrqClass, legacy_affinity: str) -> List[Outcome]:
    smp_affinity_list: str = os.path.join(irq_path, SMP_AFFINITY_LIST)

    if isinstance(irq_class, Legacy):
        # All virtionet INTx IRQs are delivered to CPU 0.
        write_value(smp_affinity_list, legacy_affinity)
        return [Outcome(SET, f"Setting {smp_affinity_list} to {legacy_affinity} for device {irq_class.device}.")]

    if not isinstance(irq_class, MsixQueue):
        return []
    if not os.path.isfile(os.path.join(irq_path, AFFINITY_HINT)):
        return []

    # Queue N is serviced by CPU N. The kernel may clamp the request.
    write_value(smp_affinity_list, str(irq_class.index))
    real_affinity: str = read_value(smp_affinity_list)
    return [
        Outcome(SET, f"Setting {smp_affinity_list} to {irq_class.index} for device {irq_class.device}."),
        Outcome(INFO, f"{smp_affinity_list}: real affinity {real_affinity}"),
    ]


def set_virtio_affinity(config: TuningConfig) -> List[Outcome]:
    """Pins virtio-net interrupts: INTx lines to CPU 0, MSI-X queue vectors to the CPU matching their queue."""
    outcomes: List[Outcome] = []
    irq_dir: str = config.irq_dir()
    for device_dir in virtio_net_devices(config):
        device: str = os.path.basename(device_dir)
        for irq in numeric_entries(irq_dir):
            irq_path: str = os.path.join(irq_dir, irq)
            if not os.path.isfile(os.path.join(irq_path, SMP_AFFINITY_LIST)):
                continue
            irq_class: IrqClass = classify_irq(irq_path, device)
            try:
                outcomes += apply_virtio_affinity(irq_path, irq_class, config.legacy_affinity())
            except (OSError, ValueError) as e:
                outcomes.append(Outcome(FAILED, f"Could not set affinity of IRQ {irq} for device {device}: {e}."))
    return outcomes


def set_notify_block_affinity(config: TuningConfig) -> List[Outcome]:
    """Copies the driver's affinity hint into smp_affinity for every gVNIC notification block IRQ."""
    outcomes: List[Outcome] = []
    irq_dir: str = config.irq_dir()
    for irq in numeric_entries(irq_dir):
        irq_path: str = os.path.join(irq_dir, irq)
        if not isinstance(classify_irq(irq_path), NotifyBlock):
            continue
        affinity_hint: str = os.path.join(irq_path, AFFINITY_HINT)
        if not os.path.isfile(affinity_hint):
            continue
        try:
            hint: str = read_value(affinity_hint)
            write_value(os.path.join(irq_path, SMP_AFFINITY), hint)
            outcomes.append(Outcome(SET, f"Setting smp_affinity on {irq_path} to {hint}"))
        except (OSError, ValueError) as e:
            outcomes.append(Outcome(FAILED, f"Could not set smp_affinity on {irq_path}: {e}."))
    return outcomes
