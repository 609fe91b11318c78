"""Custom exception classes for the relay."""


class RelayException(Exception):
    """
    Base exception class for all relay errors.
    """
    pass


class LocalIOError(RelayException):
    """
    Raised when a local file or directory cannot be read.
    """
    pass


class LocalFileNotFoundError(LocalIOError):
    """
    Raised when a local path does not exist.
    """
    pass


class LocalPermissionError(LocalIOError):
    """
    Raised when a local path exists but cannot be opened.
    """
    pass


class RemoteError(RelayException):
    """
    Raised when the object store fails to list, create or delete objects.
    """
    pass


class ProtocolError(RelayException):
    """
    Raised when a push-channel client sends a malformed handshake or frame.
    """
    pass


class UploadInProgressError(RelayException):
    """
    Raised when an upload is requested for a path that is already uploading.
    """
    pass


class UploadNotFoundError(RelayException):
    """
    Raised when cancelling a path that has no active upload.
    """
    pass


class UploadCancelledError(RelayException):
    """
    Raised at a chunk boundary once an upload's cancel token has fired.
    """
    pass


def local_io_error(path: str, exc: OSError) -> LocalIOError:
    """
    Translate an OSError raised while touching a local path.

    Args:
        path: Local path being accessed
        exc: Original OS error

    Returns:
        The matching LocalIOError subclass instance
    """
    if isinstance(exc, FileNotFoundError):
        return LocalFileNotFoundError(f"{path}: no such file")
    if isinstance(exc, PermissionError):
        return LocalPermissionError(f"{path}: permission denied")
    if isinstance(exc, IsADirectoryError):
        return LocalIOError(f"{path}: is a directory")
    return LocalIOError(f"{path}: {exc.strerror or exc}")
