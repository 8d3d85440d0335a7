import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterable

from photo_file_server.config.config import CollisionPolicy
from photo_file_server.error_code import raise_exception, ErrorCode
from photo_file_server.photo.model import UploadResult

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp')

CONTENT_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.bmp': 'image/bmp',
    '.webp': 'image/webp',
}
DEFAULT_CONTENT_TYPE = 'application/octet-stream'

FORBIDDEN_CHARS = frozenset('<>:"|?*')


def content_type(file_name: str) -> str:
    return CONTENT_TYPES.get(PurePosixPath(file_name).suffix.lower(), DEFAULT_CONTENT_TYPE)


def is_image(file_name: str) -> bool:
    return PurePosixPath(file_name).suffix.lower() in IMAGE_EXTENSIONS


def client_file_name(file_name: str | None) -> str:
    """Base name of a client supplied file name, with any directory part dropped."""
    name = PurePosixPath((file_name or '').replace('\\', '/')).name
    if name in ('', '.', '..'):
        raise_exception(ErrorCode.INVALID_REQUEST, f'invalid file name {file_name!r}')
    return name


class PhotoStorage:
    def __init__(self, base_dir: Path | str, collision_policy: CollisionPolicy = CollisionPolicy.OVERWRITE):
        self.base_dir = Path(base_dir)
        self.collision_policy = CollisionPolicy(collision_policy)

    def init(self):
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def resolve_dir(self, directory: str | None) -> Path:
        directory = (directory or '').strip()
        if not directory:
            raise_exception(ErrorCode.INVALID_REQUEST, 'directory not provided')
        if FORBIDDEN_CHARS.intersection(directory):
            raise_exception(ErrorCode.INVALID_REQUEST, 'directory contains invalid characters')

        path = PurePosixPath(directory.replace('\\', '/'))
        if path.is_absolute() or '..' in path.parts:
            logger.warning('rejected directory outside storage root: %r', directory)
            raise_exception(ErrorCode.INVALID_REQUEST, 'directory must be a relative path without ".."')

        root = self.base_dir.resolve()
        target = root.joinpath(*path.parts).resolve()
        # symlinks inside the root may still point elsewhere
        if target != root and root not in target.parents:
            logger.warning('rejected directory resolving outside storage root: %r', directory)
            raise_exception(ErrorCode.INVALID_REQUEST, 'directory must stay inside the storage root')
        return target

    def resolve_file(self, directory: str, file_name: str) -> Path:
        file_path = self.resolve_dir(directory) / client_file_name(file_name)
        if not file_path.is_file():
            raise_exception(ErrorCode.FILE_NOT_FOUND, f'{directory}/{file_name}')
        return file_path

    def _target_path(self, dir_path: Path, name: str) -> Path | None:
        file_path = dir_path / name
        if not file_path.exists() or self.collision_policy == CollisionPolicy.OVERWRITE:
            return file_path
        if self.collision_policy == CollisionPolicy.REJECT:
            return None

        stem, suffix = file_path.stem, file_path.suffix
        index = 1
        while file_path.exists():
            file_path = dir_path / f'{stem} ({index}){suffix}'
            index += 1
        return file_path

    def save_files(self, directory: str | None, files: Iterable[tuple[str, BinaryIO]]) -> UploadResult:
        """Write every file of the batch into `directory`, creating it if needed.

        Writes are not transactional: when one file fails, the files written
        before it stay on disk and StorageError(STORAGE_WRITE_ERROR) is raised.
        """
        dir_path = self.resolve_dir(directory)
        files = [(client_file_name(file_name), stream) for file_name, stream in files]

        try:
            dir_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error('failed to create directory %s: %s', dir_path, e)
            raise_exception(ErrorCode.STORAGE_WRITE_ERROR, str(e))

        saved_files = []
        ignore_files = []
        for file_name, stream in files:
            file_path = self._target_path(dir_path, file_name)
            if file_path is None:
                ignore_files.append(file_name)
                continue

            try:
                with open(file_path, 'wb') as buffer:
                    shutil.copyfileobj(stream, buffer)
            except OSError as e:
                logger.error('failed to write %s after %d stored file(s): %s', file_path, len(saved_files), e)
                raise_exception(ErrorCode.STORAGE_WRITE_ERROR, f'{file_name}: {e}')
            saved_files.append(file_path.name)

        logger.info('stored %d file(s) in %s, ignored %d', len(saved_files), dir_path, len(ignore_files))
        return UploadResult(saved_files=saved_files, ignore_files=ignore_files)

    def list_images(self, directory: str | None) -> list[str]:
        dir_path = self.resolve_dir(directory)
        if not dir_path.is_dir():
            raise_exception(ErrorCode.DIRECTORY_NOT_FOUND, directory.strip())
        return [item.name for item in dir_path.iterdir() if item.is_file() and is_image(item.name)]
