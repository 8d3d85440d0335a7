class PhotoDropError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidRequest(PhotoDropError):
    pass


class DirectoryNotFound(PhotoDropError):
    pass


class FileNotFound(PhotoDropError):
    pass


class StorageWriteError(PhotoDropError):
    pass


class TransportError(PhotoDropError):
    pass


class OfflineError(PhotoDropError):
    pass


class UploadInProgress(PhotoDropError):
    pass


class BatchStateError(PhotoDropError):
    pass
