from pydantic import BaseModel


class UploadResult(BaseModel):
    saved_files: list[str]
    ignore_files: list[str]


class UploadResponse(UploadResult):
    message: str
    stored_count: int


class PhotoListResponse(BaseModel):
    files: list[str]


class MessageResponse(BaseModel):
    message: str
