class UsageError(Exception):
    """
    base class for all errors raised by tokentally.
    """


class LogFileNotFoundError(UsageError):
    def __init__(self, path: "str") -> "None":
        super().__init__(f"log file not found: {path}")
        self.path = path


class InvalidDataError(UsageError):
    """
    raised when a log file's content is not valid UTF-8.
    """

    def __init__(self, path: "str") -> "None":
        super().__init__(f"log file is not valid UTF-8: {path}")
        self.path = path


class ParsingError(UsageError):
    """
    raised in strict mode when a content line can't be decoded.
    """

    def __init__(self, line_number: "int", reason: "str") -> "None":
        super().__init__(f"error parsing line {line_number}: {reason}")
        self.line_number = line_number
        self.reason = reason


class NoDataFoundError(UsageError):
    """
    raised when a full statistics query finds no usage entries.
    """
