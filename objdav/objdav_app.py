# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
r"""
::

      ___  _     _ ___   ___   __
     / _ \| |__ (_)   \ /_\ \ / /
    | (_) | '_ \| | |) / _ \ V /
     \___/|_.__// |___/_/ \_\_/
              |__/

WSGI application that serves an object store as WebDAV collection.

On init:

    Merge the configuration dictionary with the defaults and check it.

    Open the object store and freeze the core settings into a
    :class:`~objdav.dav_config.DAVConfig`.

    Build the middleware stack (``ErrorPrinter`` -> ``HTTPAuthenticator`` ->
    ``RequestServer`` by default).

For every request:

    Re-encode ``environ["PATH_INFO"]`` as UTF-8 and add
    ``environ["objdav.config"]`` and ``environ["objdav.verbose"]``.

    Pass the request to the outermost middleware and write one log line when
    the response is started.
"""

import copy
import inspect
import platform
import time

from objdav import __version__, util
from objdav.dav_config import DAVConfig
from objdav.default_conf import DEFAULT_CONFIG
from objdav.mw.base_mw import BaseMiddleware
from objdav.path_resolver import PathResolver
from objdav.store.base_store import ObjectStore
from objdav.store.memory_store import ObjectStoreDict

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

#: Options that were renamed (old name -> new name)
_RENAMED_OPTIONS = {
    "basePath": "root_prefix",
    "base_path": "root_prefix",
    "users": "simple_dc.user_mapping",
    "user_mapping": "simple_dc.user_mapping",
    "allowDirectoryListing": "dir_listing.enable",
    "logging.verbose": "verbose",
}


def _check_config(config):
    """Raise ValueError that lists all invalid options of `config`."""
    errors = []

    root_prefix = config.get("root_prefix")
    if root_prefix is None:
        root_prefix = ""
    if not isinstance(root_prefix, str):
        errors.append(f"Option 'root_prefix' must be a string: {root_prefix!r}.")
    elif root_prefix and (root_prefix.startswith("/") or not root_prefix.endswith("/")):
        errors.append(
            f"If a root_prefix is set, it must end (but not start) with '/': {root_prefix!r}."
        )

    user_map = util.get_dict_value(config, "simple_dc.user_mapping", None)
    if user_map is not None and not isinstance(user_map, dict):
        errors.append("Option 'simple_dc.user_mapping' must be a dict {user: password}.")
    elif user_map:
        for user_name, password in user_map.items():
            if not isinstance(password, str):
                errors.append(
                    f"Invalid option: simple_dc.user_mapping[{user_name!r}]: must be a password string."
                )

    block_size = config.get("block_size")
    if not isinstance(block_size, int) or block_size <= 0:
        errors.append(f"Option 'block_size' must be a positive integer: {block_size!r}.")

    if not config.get("object_store"):
        errors.append("Missing required option 'object_store'.")

    for mw in config.get("middleware_stack") or []:
        if not (inspect.isclass(mw) and issubclass(mw, BaseMiddleware)):
            errors.append(f"Invalid middleware_stack item (expected a class): {mw!r}.")

    for old, new in _RENAMED_OPTIONS.items():
        if util.get_dict_value(config, old, NotImplemented) is not NotImplemented:
            errors.append(f"Unsupported option {old!r}: use {new!r} instead.")

    if errors:
        raise ValueError("Invalid configuration:\n  - " + "\n  - ".join(errors))
    return True


def make_object_store(config):
    """Return an (opened) ObjectStore instance for the `object_store` option."""
    object_store = config.get("object_store")
    if object_store is True:
        object_store = ObjectStoreDict()
    elif isinstance(object_store, (str, dict)):
        object_store = util.instantiate_class(object_store)

    if not isinstance(object_store, ObjectStore):
        # Accept duck-typed stores
        for name in ("head", "get", "put", "delete", "list"):
            if not callable(getattr(object_store, name, None)):
                raise ValueError(f"Invalid object_store: {object_store!r}")
    if callable(getattr(object_store, "open", None)):
        object_store.open()
    return object_store


# ========================================================================
# ObjDAVApp
# ========================================================================
class ObjDAVApp:
    def __init__(self, config):
        self.config = copy.deepcopy(DEFAULT_CONFIG)
        util.deep_update(self.config, config)
        config = self.config

        if config["logging"].get("enable") is not False:
            util.init_logging(config)

        _check_config(config)

        self.verbose = config.get("verbose", 3)

        #: Immutable core settings
        self.dav_config = DAVConfig.from_config(config)
        #: Maps URL paths to backend keys
        self.resolver = PathResolver(self.dav_config.root_prefix)
        #: The backend
        self.store = make_object_store(config)

        # Every middleware wraps the one that follows it in the list, so the
        # stack is built from the end
        self.application = None
        self.middleware = []
        for mw_class in reversed(config["middleware_stack"]):
            self.application = mw_class(self, self.application, config)
            self.middleware.insert(0, self.application)

        _logger.info(
            f"ObjDAV/{__version__} Python/{util.PYTHON_VERSION} {platform.platform(aliased=True)}"
        )
        _logger.info(f"Object store: {self.store!r}")
        _logger.info(f"Root prefix:  {self.dav_config.root_prefix!r}")
        if not self.dav_config.allow_dir_listing:
            _logger.info("Directory listing is disabled.")
        _logger.debug(f"Middleware stack: {self.middleware}")

    def close(self):
        """Release the object store (e.g. the redis connection pool)."""
        if callable(getattr(self.store, "close", None)):
            _logger.info(f"Closing {self.store!r}")
            self.store.close()

    def _log_request(self, environ, status, start_time):
        """Write one summary line per request (verbose >= 3)."""
        extra = []
        if "HTTP_DESTINATION" in environ:
            extra.append(f"dest={environ['HTTP_DESTINATION']!r}")
        if environ.get("CONTENT_LENGTH"):
            extra.append(f"length={environ['CONTENT_LENGTH']}")
        if "HTTP_DEPTH" in environ:
            extra.append(f"depth={environ['HTTP_DEPTH']}")
        if self.verbose >= 4 and "HTTP_TRANSFER_ENCODING" in environ:
            extra.append(f"transfer-enc={environ['HTTP_TRANSFER_ENCODING']}")
        extra.append(f"elap={time.time() - start_time:.3f}sec")

        # 127.0.0.1 - tester - "PUT /docs/a.txt" length=11, elap=0.001sec -> 201 Created
        _logger.info(
            '{addr} - {user} - "{method} {path}" {extra} -> {status}'.format(
                addr=environ.get("REMOTE_ADDR", ""),
                user=environ.get("objdav.auth.user_name") or "(anonymous)",
                method=environ["REQUEST_METHOD"],
                path=environ["PATH_INFO"],
                extra=", ".join(extra),
                status=status,
            )
        )

    def __call__(self, environ, start_response):
        path = util.re_encode_wsgi(environ.get("PATH_INFO", ""), fallback=True)
        environ["PATH_INFO"] = path or "/"
        environ["objdav.config"] = self.config
        environ["objdav.verbose"] = self.verbose

        start_time = time.time()

        def _start_response_wrapper(status, response_headers, exc_info=None):
            # A body that was not read (e.g. PUT answered with 401) must not
            # be left in the connection
            util.read_and_discard_input(environ)
            if self.verbose >= 3:
                self._log_request(environ, status, start_time)
            return start_response(status, response_headers, exc_info)

        app_iter = self.application(environ, _start_response_wrapper)
        try:
            yield from app_iter
        finally:
            if hasattr(app_iter, "close"):
                app_iter.close()
