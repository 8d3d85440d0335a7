from enum import Enum

from fastapi import HTTPException


class ErrorCode(Enum):
    INVALID_REQUEST = (400, "Invalid request")
    DIRECTORY_NOT_FOUND = (404, "Directory not found")
    FILE_NOT_FOUND = (404, "File not found")
    STORAGE_WRITE_ERROR = (500, "Error saving files")

    def __init__(self, code, desc):
        self.code = code
        self.desc = desc


class StorageError(HTTPException):
    def __init__(self, error_code: ErrorCode, detail: str):
        super().__init__(status_code=error_code.code, detail=detail)
        self.error_code = error_code


def raise_exception(error_code: ErrorCode, desc: str | None = None):
    # remove redundant desc
    if desc and desc.startswith(error_code.desc):
        desc = desc[len(error_code.desc):]
        if desc.startswith(','):
            desc = desc[1:]
        desc = desc.strip()

    raise StorageError(error_code, error_code.desc + (', ' + desc if desc else ''))
