"""
Abstract base middleware class.
"""

from abc import ABC, abstractmethod

__docformat__ = "reStructuredText"


class BaseMiddleware(ABC):
    """Abstract base class of the items in ``middleware_stack``.

    Every item wraps the next one (`next_app`). The stack is::

        objdav.error_printer.ErrorPrinter
        objdav.http_authenticator.HTTPAuthenticator
        objdav.request_server.RequestServer
    """

    def __init__(self, objdav_app, next_app, config):
        self.objdav_app = objdav_app
        self.next_app = next_app
        self.config = config
        self.verbose = config.get("verbose", 3)

    @abstractmethod
    def __call__(self, environ, start_response):
        raise NotImplementedError

    def __repr__(self):
        return f"{self.__module__}.{self.__class__.__name__}"
