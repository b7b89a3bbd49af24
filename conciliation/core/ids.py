# conciliation/core/ids.py

"""
Record identifiers for a single reconciliation run.
"""


class RecordIdSequence:
    """
    Per-run counter handing out record ids such as "movement-12".

    One counter is shared by every kind, so ids are unique within the run.
    Create one per run and pass it to every loader.
    """

    def __init__(self, start: int = 1):
        self._next = start
        self.issued = 0

    def next_id(self, kind: str) -> str:
        value = self._next
        self._next += 1
        self.issued += 1
        return f"{kind}-{value}"
