# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import List

# ======================================================================================================================
# Status Tags
# ======================================================================================================================

SET: str = "SET"
SKIPPED: str = "SKIPPED"
FAILED: str = "FAILED"
INFO: str = "INFO"

# ======================================================================================================================
# Outcomes
# ======================================================================================================================


class Outcome:
    '''The result of one tuning decision: a status tag and a human readable message.'''

    def __init__(self, status: str, message: str, sort_key: int = 0):
        self.status = status
        self.message = message
        self.sort_key = sort_key

    def __eq__(self, other):
        if not isinstance(other, Outcome):
            return NotImplemented
        return self.status == other.status and self.message == other.message

    def __repr__(self):
        return f"Outcome({self.status!r}, {self.message!r})"

    def line(self) -> str:
        return "[{}] {}".format(self.status, self.message)


def report(outcomes: List[Outcome]) -> None:
    for outcome in outcomes:
        print(outcome.line(), flush=True)
