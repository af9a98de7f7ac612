# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Callable, Dict, List
from multiqueue.channels import enable_multiqueue
from multiqueue.config import TuningConfig
from multiqueue.irq import set_notify_block_affinity, set_virtio_affinity
from multiqueue.outcome import Outcome, FAILED
from multiqueue.task.generic import BaseTask, TaskResult, run_task
from multiqueue.xps import set_xps_affinity

# ======================================================================================================================


# Runs the tuning pipeline. Every pass runs even when an earlier one blew up.
def run_pipeline(config: TuningConfig, runner: Callable[[BaseTask], TaskResult] = run_task,
                 num_cpus: int = None) -> Dict[str, List[Outcome]]:
    passes: dict = {
        "multiqueue": lambda: enable_multiqueue(config, runner),
        "virtio-irq": lambda: set_virtio_affinity(config),
        "notify-block-irq": lambda: set_notify_block_affinity(config),
        "xps": lambda: set_xps_affinity(config, num_cpus),
    }

    status: Dict[str, List[Outcome]] = {}
    for name, step in passes.items():
        try:
            status[name] = step()
        except Exception as e:
            status[name] = [Outcome(FAILED, f"{name} pass aborted: {e!r}")]
    return status
