"""Exceptions raised or collected by the reconciliation engine."""


class RowError(ValueError):
    """A single malformed incoming record.

    Collected per import and reported alongside the counts; the rest of the
    batch is still processed.
    """

    def __init__(self, row, message, record_id=None):
        self.row = row
        self.message = message
        self.record_id = record_id
        super().__init__(str(self))

    def __str__(self):
        location = f"Row {self.row}" if self.row is not None else "Row ?"
        if self.record_id:
            location += f" ({self.record_id})"
        return f"{location}: {self.message}"


class ScheduleError(ValueError):
    """A recurring bill's schedule cannot be resolved."""


class StructuralError(TypeError):
    """Input was not a sequence of records."""
