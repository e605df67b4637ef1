class StorageError(Exception):
    """The backing store could not complete an operation (I/O, connection, driver)."""


class ConflictError(Exception):
    """A unique value (username, FIR number) is already taken."""

    def __init__(self, field, value):
        super().__init__(f"{field} '{value}' already exists")
        self.field = field
        self.value = value
