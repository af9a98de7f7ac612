# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import os
from typing import List
from multiqueue.config import TuningConfig
from multiqueue.outcome import Outcome, SET, FAILED
from multiqueue.sysfs import read_value, sorted_glob, write_value

# ======================================================================================================================
# Constants
# ======================================================================================================================

# Width of one comma separated word in a kernel cpumask string.
MASK_WORD_BITS: int = 32

# ======================================================================================================================
# Mask Construction
# ======================================================================================================================


def usable_cpu_count(cap: int) -> int:
    """Counts the CPUs this process may run on, like nproc(1), capped at cap."""
    if hasattr(os, "sched_getaffinity"):
        ncpus: int = len(os.sched_getaffinity(0))
    else:
        ncpus: int = os.cpu_count() or 0
    return min(ncpus, cap)


def queue_index(path: str) -> int:
    """Extracts N from the tx-<N> component of a transmit queue path."""
    for component in reversed(path.split(os.sep)):
        name, sep, index = component.partition("-")
        if name == "tx" and sep and index.isdigit():
            return int(index)
    raise ValueError(f"No transmit queue index in path: {path}")


def stripe_mask(queue: int, num_queues: int, num_cpus: int) -> int:
    """Builds the mask of CPUs c with c % num_queues == queue."""
    mask: int = 0
    if num_queues <= 0:
        return mask
    for cpu in range(queue, num_cpus, num_queues):
        mask |= 1 << cpu
    return mask


def format_xps_mask(mask: int, num_cpus: int) -> str:
    """Formats a mask as comma separated 32 bit hex words, most significant word first.

    The kernel ignores bits above the CPU count, so one word is emitted per started group of 32 CPUs and
    always at least one.
    """
    nwords: int = max(1, (num_cpus + MASK_WORD_BITS - 1) // MASK_WORD_BITS)
    words: List[str] = []
    for i in reversed(range(nwords)):
        words.append("{:08x}".format((mask >> (i * MASK_WORD_BITS)) & 0xffffffff))
    return ",".join(words)

# ======================================================================================================================
# Transmit Queue Striping
# ======================================================================================================================


def xps_files(config: TuningConfig) -> List[str]:
    pattern: str = os.path.join(config.net_dir(), config.xps_interface_glob(), "queues", "tx-*", "xps_cpus")
    return sorted_glob(pattern)


def set_xps_affinity(config: TuningConfig, num_cpus: int = None) -> List[Outcome]:
    """Stripes CPUs across transmit queues as cpu % queue_count, returning outcomes in queue order."""
    if num_cpus is None:
        num_cpus = usable_cpu_count(config.max_xps_cpus())
    else:
        num_cpus = min(num_cpus, config.max_xps_cpus())

    queues: List[str] = xps_files(config)
    num_queues: int = len(queues)

    outcomes: List[Outcome] = []
    for path in queues:
        try:
            queue: int = queue_index(path)
        except ValueError as e:
            outcomes.append(Outcome(FAILED, f"Skipping {path}: {e}.", num_queues))
            continue
        xps: str = format_xps_mask(stripe_mask(queue, num_queues, num_cpus), num_cpus)
        try:
            write_value(path, xps)
            outcomes.append(Outcome(SET, "Queue {} XPS={} for {}".format(queue, read_value(path), path), queue))
        except (OSError, ValueError) as e:
            outcomes.append(Outcome(FAILED, "Queue {} XPS={} for {}: {}".format(queue, xps, path, e), queue))
    return sorted(outcomes, key=lambda outcome: outcome.sort_key)
