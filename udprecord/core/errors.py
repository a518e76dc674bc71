# core/errors.py


class RecordError(Exception):
    """Base class for everything raised by udprecord."""


class CodecError(RecordError):
    pass


class PayloadTooLarge(CodecError):
    """
    Raised by encode() when a record does not fit in one frame.

    `excess` is how many bytes the caller has to shave off the text.
    """

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        self.excess = size - limit
        super().__init__(
            f"Frame would be {size} bytes, limit is {limit} ({self.excess} over)"
        )


class DecodeError(CodecError):
    """A received frame could not be turned into a Record."""

    def __init__(self, message: str, length: int):
        self.length = length
        super().__init__(message)


class FrameTooShort(DecodeError):
    pass


class FrameTooLong(DecodeError):
    pass


class InvalidUtf8(DecodeError):
    pass


class TransportError(RecordError):
    """
    Socket-level failure. The error that caused it is kept in `cause`
    and chained as __cause__.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class BindError(TransportError):
    def __init__(self, address, cause: OSError | None = None):
        self.address = address
        super().__init__(f"Couldn't bind to {address[0]}:{address[1]}: {cause}", cause)
