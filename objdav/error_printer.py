# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
WSGI middleware that turns exceptions into HTTP error responses.

This is the outermost item of the middleware stack, so it is the single
place where an :class:`~objdav.dav_error.ErrorKind` becomes a status code.
Error responses are plain text. Any exception that is not a DAVError is
reported as '500 Internal Server Error' with the exception text as body.
"""

from objdav import util
from objdav.dav_error import HTTP_INTERNAL_ERROR, DAVError, as_DAVError
from objdav.mw.base_mw import BaseMiddleware

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)


# ========================================================================
# ErrorPrinter
# ========================================================================
class ErrorPrinter(BaseMiddleware):
    def __call__(self, environ, start_response):
        # The inner apps are generators (e.g. the GET handler), so errors may
        # be raised while iterating. The response is only started with the
        # first chunk, so it can still be replaced by an error page.
        sub_start_response = util.SubAppStartResponse()
        started = False
        try:
            app_iter = self.next_app(environ, sub_start_response)
            try:
                for chunk in app_iter:
                    if not started:
                        sub_start_response.forward(start_response)
                        started = True
                    yield chunk
            finally:
                if hasattr(app_iter, "close"):
                    app_iter.close()
            if not started:
                sub_start_response.forward(start_response)
            return
        except Exception as e:
            if started:
                # Status and part of the body are sent: only the server can
                # abort the connection now
                _logger.error(
                    f"{environ['REQUEST_METHOD']} {environ['PATH_INFO']!r} "
                    f"failed after the response was started: {e}"
                )
                raise
            if not isinstance(e, DAVError):
                _logger.exception(f"Unexpected {e.__class__.__name__}: {e}")
            error = as_DAVError(e)

        yield from self.send_error_response(environ, start_response, error)

    def send_error_response(self, environ, start_response, e):
        if e.value == HTTP_INTERNAL_ERROR:
            _logger.error(
                f"{environ['REQUEST_METHOD']} {environ['PATH_INFO']!r}: {e}",
                exc_info=e.src_exception,
            )
        else:
            _logger.debug(f"{environ['REQUEST_METHOD']} {environ['PATH_INFO']!r}: {e}")
        return util.send_status_response(environ, start_response, e)
