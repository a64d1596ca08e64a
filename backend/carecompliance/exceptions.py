"""Exceptions raised for malformed engine input."""


class InvalidInputError(ValueError):
    """Input record that cannot be interpreted without guessing intent."""


class InvalidTimeFormat(InvalidInputError):
    """Clock value that is not a valid "HH:MM" string."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid time format: {value!r} (expected HH:MM)")
