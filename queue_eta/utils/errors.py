# queue_eta/utils/errors.py
"""
User-facing error taxonomy.

Every error carries the process exit code of its category:

    2  I/O             DataIOError, NotFoundError, ModelNotFoundError,
                       AlreadyExistsError, CorruptError
    3  parse           ParseError
    4  options         NoHaltConditionError, ConflictingOptionsError,
                       InvalidOptionError, SessionBusyError
    5  divergence      DivergenceError
    6  shape mismatch  ShapeMismatchError
    7  empty dataset   EmptyDatasetError
"""


class UserInputError(RuntimeError):
    """
    Raised for invalid user-provided input (data, models, options).
    Should NOT print traceback.
    """

    exit_code: int = 1


# ----------------------------------------------------------------------
# I/O
# ----------------------------------------------------------------------
class DataIOError(UserInputError):
    """A path could not be read or written."""

    exit_code = 2


class AlreadyExistsError(UserInputError):
    exit_code = 2


class NotFoundError(UserInputError):
    exit_code = 2


class ModelNotFoundError(NotFoundError):
    """A model requested for evaluation does not exist."""


class CorruptError(UserInputError):
    """A model file exists but cannot be decoded into a valid model."""

    exit_code = 2


# ----------------------------------------------------------------------
# Data
# ----------------------------------------------------------------------
class ParseError(UserInputError):
    """A CSV log does not follow the queue log schema."""

    exit_code = 3

    def __init__(self, message: str, *, source: str | None = None, row: int | None = None):
        self.message = message
        self.source = source
        self.row = row
        where = ""
        if source is not None:
            where = f"{source}: data row {row}: " if row is not None else f"{source}: "
        super().__init__(f"{where}{message}")

    def __reduce__(self):
        # keyword-only fields survive the trip back from a worker process
        return _restore_parse_error, (self.message, self.source, self.row)


def _restore_parse_error(message, source, row) -> ParseError:
    return ParseError(message, source=source, row=row)


class EmptyDatasetError(UserInputError):
    exit_code = 7


class ShapeMismatchError(UserInputError):
    """Dataset feature width differs from a model's input width."""

    exit_code = 6

    def __init__(self, *, expected: int, actual: int, model: str = ""):
        self.expected = expected
        self.actual = actual
        label = f" for model {model}" if model else ""
        super().__init__(
            f"model expects {expected} inputs{label}, dataset has {actual} features"
        )


# ----------------------------------------------------------------------
# Options
# ----------------------------------------------------------------------
class OptionsError(UserInputError):
    exit_code = 4


class NoHaltConditionError(OptionsError):
    pass


class ConflictingOptionsError(OptionsError):
    pass


class InvalidOptionError(OptionsError):
    pass


class SessionBusyError(OptionsError):
    """A training session is already active in this process."""


# ----------------------------------------------------------------------
# Training
# ----------------------------------------------------------------------
class DivergenceError(UserInputError):
    """Training error or weights became non-finite."""

    exit_code = 5
