# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import subprocess
from typing import List

# ======================================================================================================================


class TaskResult:
    def __init__(self, returncode: int, stdout: str, stderr: str):
        self.returncode: int = returncode
        self.stdout: str = stdout
        self.stderr: str = stderr

    def succeeded(self) -> bool:
        return self.returncode == 0


class BaseTask:
    def __init__(self, cmd: List[str]):
        self.cmd: List[str] = cmd

    def execute(self) -> subprocess.Popen[str]:
        return subprocess.Popen(self.cmd, text=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)


def run_task(task: BaseTask) -> TaskResult:
    """Runs a task to completion and collects its output."""
    process: subprocess.Popen[str] = task.execute()
    stdout, stderr = process.communicate()
    return TaskResult(process.returncode, stdout, stderr)
