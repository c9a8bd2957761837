from typing import Union


class SoloBitError(Exception):
    pass


class MalformedEncoding(SoloBitError, ValueError):
    """
    the data does not follow the bencode grammar
    """

    def __init__(self, message: str, position: Union[int, None] = None):
        if position is not None:
            message = f"{message} (at byte {position})"
        super().__init__(message)
        self.position = position


class SchemaError(SoloBitError, ValueError):
    """
    a decoded value is missing a required key, or a key holds the wrong type
    """

    def __init__(self, message: str, key: Union[str, None] = None):
        super().__init__(message)
        self.key = key


class PeerConnectionError(SoloBitError, ConnectionError):
    """
    dialing, reading from or writing to a peer failed, or a deadline expired
    """

    def __init__(self, message: str, timeout: bool = False):
        super().__init__(message)
        self.timeout = timeout


class ProtocolViolation(SoloBitError):
    """Raised when a peer sends something the wire protocol does not allow."""
    pass


class VerificationFailure(SoloBitError):
    """Raised when an assembled piece does not match its sha-1 hash."""

    def __init__(self, piece_index: int, expected: bytes, actual: bytes):
        super().__init__(f"piece {piece_index} failed the hash check: "
                         f"expected {expected.hex()}, got {actual.hex()}")
        self.piece_index = piece_index
        self.expected = expected
        self.actual = actual


class TrackerError(SoloBitError):
    pass
