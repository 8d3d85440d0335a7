import logging
import urllib.parse
from typing import Annotated

from fastapi import APIRouter, UploadFile, File, Form, Query, Depends
from starlette.responses import FileResponse

from photo_file_server.config.config import config
from photo_file_server.photo.model import UploadResponse, PhotoListResponse, MessageResponse
from photo_file_server.photo.storage import PhotoStorage, content_type

logger = logging.getLogger(__name__)

router = APIRouter()


def get_storage() -> PhotoStorage:
    return PhotoStorage(config.storage_root, config.storage.collision_policy)


def init():
    get_storage().init()


@router.post("/upload", response_model=UploadResponse)
def upload(photos: Annotated[list[UploadFile], File()],
           directory: Annotated[str | None, Form(alias='dir')] = None,
           storage: PhotoStorage = Depends(get_storage)) -> UploadResponse:
    result = storage.save_files(directory, [(photo.filename, photo.file) for photo in photos])
    return UploadResponse(message="Files uploaded successfully",
                          stored_count=len(result.saved_files),
                          **result.model_dump())


@router.get("/photos", response_model=PhotoListResponse)
def list_photos(directory: Annotated[str | None, Query(alias='dir')] = None,
                storage: PhotoStorage = Depends(get_storage)) -> PhotoListResponse:
    return PhotoListResponse(files=storage.list_images(directory))


@router.get("/files/{directory:path}/{file_name}")
def serve_file(directory: str, file_name: str,
               storage: PhotoStorage = Depends(get_storage)) -> FileResponse:
    file_path = storage.resolve_file(directory, file_name)
    return FileResponse(path=file_path, media_type=content_type(file_name))


@router.get("/download/{directory:path}/{file_name}")
def download_file(directory: str, file_name: str,
                  storage: PhotoStorage = Depends(get_storage)) -> FileResponse:
    file_path = storage.resolve_file(directory, file_name)
    quoted_filename = urllib.parse.quote(file_path.name)
    return FileResponse(path=file_path,
                        media_type=content_type(file_name),
                        headers={"Content-Disposition": f"attachment; filename*=utf-8''{quoted_filename}"})


@router.get("/health", response_model=MessageResponse)
def health() -> MessageResponse:
    return MessageResponse(message="ok")
