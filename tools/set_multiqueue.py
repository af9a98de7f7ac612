# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import argparse
import sys
from multiqueue.config import TuningConfig
from multiqueue.outcome import Outcome, report, FAILED
from multiqueue.pipeline import run_pipeline

# =====================================================================================================================


# Builds the configuration, falling back to the defaults if the file cannot be used.
def load_config(config_path: str, root: str) -> TuningConfig:
    config: TuningConfig = TuningConfig()
    try:
        if config_path is not None:
            config = TuningConfig.from_file(config_path)
        if root is not None:
            config = config.with_root(root)
        return config
    except Exception as e:
        report([Outcome(FAILED, f"Could not load {config_path}, using defaults: {e}")])

    config = TuningConfig()
    if root is not None:
        config = config.with_root(root)
    return config


# Reads and parses command line arguments.
def read_args() -> argparse.Namespace:
    description: str = ""
    description += "Use this utility at boot to enable virtionet multiqueue and to spread network interrupts and\n"
    description += "transmit queues across CPUs. Every step is best effort: failures are reported and skipped."

    # Initialize parser.
    parser = argparse.ArgumentParser(
        prog="set_multiqueue.py", description=description)

    parser.add_argument("--config", required=False, default=None,
                        help="YAML file overriding pseudo-filesystem paths and limits")
    parser.add_argument("--root", required=False, default=None,
                        help="prefix applied to /proc and /sys paths")

    # Read arguments from command line.
    return parser.parse_args()


# Drives the program.
def main():
    args: argparse.Namespace = read_args()

    print("Running set_multiqueue.py.", flush=True)

    config: TuningConfig = load_config(args.config, args.root)
    status: dict = run_pipeline(config)
    for outcomes in status.values():
        report(outcomes)

    # Never fail the boot.
    sys.exit(0)


if __name__ == "__main__":
    main()
