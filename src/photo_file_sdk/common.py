from requests import Response

from photo_file_sdk.errors import PhotoDropError, InvalidRequest, FileNotFound, StorageWriteError


def check_response(response: Response, not_found: type[PhotoDropError] = FileNotFound):
    if response.ok:
        return

    try:
        body = response.json()
    except ValueError:
        body = None
    desc = body.get('message') if isinstance(body, dict) else response.text
    desc = desc or response.reason or str(response.status_code)

    if response.status_code == 400:
        raise InvalidRequest(desc, response.status_code)
    if response.status_code == 404:
        raise not_found(desc, response.status_code)
    if response.status_code >= 500:
        raise StorageWriteError(desc, response.status_code)
    raise PhotoDropError(desc, response.status_code)
