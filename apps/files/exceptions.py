class TelestoreError(Exception):
    """Base exception for every error raised by the storage layer"""
    pass


class EncryptionServiceError(TelestoreError):
    """Base exception for encryption service errors"""
    pass

class InvalidKey(EncryptionServiceError):
    """Raised when the encryption key does not resolve to 32 bytes"""
    pass

class EncryptionFailed(EncryptionServiceError):
    """Raised when a chunk cannot be encrypted"""
    pass

class DecryptionFailed(EncryptionServiceError):
    """Raised when a chunk cannot be decoded or decrypted"""
    pass


class TransportError(TelestoreError):
    """Base exception for storage service (transport) errors"""
    pass

class StorageUploadError(TransportError):
    """Raised when chunk upload fails"""
    pass

class StorageDownloadError(TransportError):
    """Raised when chunk download fails"""
    pass


class TrackingError(TelestoreError):
    """Raised when a tracking backend cannot be read or written"""
    pass

class NotFound(TelestoreError):
    """Raised when a path is neither tracked nor a raw remote id"""
    pass

class ChecksumMismatch(TelestoreError):
    """Raised when reassembled content does not match the recorded checksum"""
    pass


class FileOperationError(TelestoreError):
    """
    Raised at the FileService boundary. Names the path and the underlying cause,
    which is also chained as __cause__.
    """
    operation = "process"

    def __init__(self, path, cause=None):
        self.path = path
        self.cause = cause
        message = f"Unable to {self.operation} file at '{path}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)

class FileWriteError(FileOperationError):
    operation = "write"

class FileReadError(FileOperationError):
    operation = "read"

class FileDeleteError(FileOperationError):
    operation = "delete"
