import logging
import mimetypes
import urllib.parse
from typing import BinaryIO, Callable

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from requests_toolbelt import MultipartEncoder, MultipartEncoderMonitor

from photo_file_sdk.common import check_response
from photo_file_sdk.errors import TransportError, DirectoryNotFound
from photo_file_server.photo.model import UploadResponse, PhotoListResponse

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class PhotoApi(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    endpoint: str
    timeout: float | None = None
    session: requests.Session = Field(default_factory=requests.Session, exclude=True)

    def __init__(self, endpoint: str, timeout: float | None = None, session: requests.Session | None = None):
        super().__init__(endpoint=endpoint.rstrip('/'), timeout=timeout, session=session or requests.Session())

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning('%s %s failed: %s', method, url, e)
            raise TransportError(f'Network error: {e}') from e

    @staticmethod
    def _parse(response: requests.Response, model: type[BaseModel]):
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            logger.warning('unexpected response body from %s: %s', response.url, e)
            raise TransportError(f'Unexpected response from {response.url}', response.status_code) from e

    @staticmethod
    def quote_path(directory: str, file_name: str) -> str:
        return f"{urllib.parse.quote(directory.strip().strip('/'))}/{urllib.parse.quote(file_name, safe='')}"

    def file_url(self, directory: str, file_name: str) -> str:
        return f"{self.endpoint}/files/{self.quote_path(directory, file_name)}"

    def download_url(self, directory: str, file_name: str) -> str:
        return f"{self.endpoint}/download/{self.quote_path(directory, file_name)}"

    def upload(self,
               directory: str,
               files: list[tuple[str, BinaryIO]],
               on_progress: ProgressCallback | None = None) -> UploadResponse:
        """Send the whole batch as one streaming multipart request.

        `on_progress(bytes_read, body_length)` is called as the encoder hands
        the body to the transport.
        """
        fields = [('dir', directory.strip())]
        for file_name, stream in files:
            media_type = mimetypes.guess_type(file_name)[0] or 'application/octet-stream'
            fields.append(('photos', (file_name, stream, media_type)))

        encoder = MultipartEncoder(fields=fields)
        callback = (lambda monitor: on_progress(monitor.bytes_read, monitor.len)) if on_progress else None
        monitor = MultipartEncoderMonitor(encoder, callback)

        logger.info('uploading %d file(s), %d bytes to %r', len(files), monitor.len, directory)
        response = self._request('POST', f"{self.endpoint}/upload",
                                 data=monitor,
                                 headers={"Content-Type": monitor.content_type})
        check_response(response)
        return self._parse(response, UploadResponse)

    def list_photos(self, directory: str) -> list[str]:
        response = self._request('GET', f"{self.endpoint}/photos", params={"dir": directory.strip()})
        check_response(response, not_found=DirectoryNotFound)
        return self._parse(response, PhotoListResponse).files

    def fetch(self, url: str) -> bytes:
        response = self._request('GET', url, headers={"Accept": "image/*"})
        check_response(response)
        return response.content

    def get_file(self, directory: str, file_name: str) -> bytes:
        return self.fetch(self.file_url(directory, file_name))

    def download(self, directory: str, file_name: str) -> bytes:
        return self.fetch(self.download_url(directory, file_name))

    def health(self) -> bool:
        response = self._request('GET', f"{self.endpoint}/health")
        return response.ok
