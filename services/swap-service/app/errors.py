class SwapError(Exception):
    """Expected, caller-facing failure of a slot or swap operation."""

    kind = "SwapError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(SwapError):
    kind = "NotFound"
    status_code = 404


class Forbidden(SwapError):
    kind = "Forbidden"
    status_code = 403


class InvalidState(SwapError):
    kind = "InvalidState"
    status_code = 409
