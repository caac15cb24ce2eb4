# errors.py: error taxonomy raised by the engine and recorded as the sticky error


class CasmError(ValueError):
    """Base class for every condition that stops the machine."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class LexicalError(CasmError):
    kind = "lexical"


class CasmSyntaxError(CasmError):
    kind = "syntax"


class AddressError(CasmError):
    kind = "addressing"


class RegisterRangeError(CasmError):
    kind = "register-range"


class GarbageReadError(CasmError):
    kind = "read-garbage"


class GarbageInstructionError(CasmError):
    kind = "garbage-instruction"


class UnresolvedLabelError(CasmError):
    kind = "unresolved-label"


class TooManyLabelsError(CasmError):
    kind = "too-many-labels"


class DuplicateLabelError(CasmError):
    kind = "duplicate-label"


class ReservedLabelError(CasmError):
    kind = "reserved-label"


class ProgramTooLargeError(CasmError):
    kind = "program-too-large"


class DivisionByZeroError(CasmError):
    kind = "division-by-zero"


class RunawayLoopError(CasmError):
    kind = "runaway-loop"
