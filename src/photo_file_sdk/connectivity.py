import logging
from typing import Callable

from photo_file_sdk.errors import TransportError
from photo_file_sdk.photo_api import PhotoApi

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], None]


class Connectivity:
    """Known online/offline state; listeners hear about transitions only."""

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: list[ConnectivityListener] = []

    @property
    def online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info('connectivity changed: %s', 'online' if online else 'offline')
        for listener in list(self._listeners):
            listener(online)

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def probe(self, api: PhotoApi) -> bool:
        try:
            online = api.health()
        except TransportError:
            online = False
        self.set_online(online)
        return online
