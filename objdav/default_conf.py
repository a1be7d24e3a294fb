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

Default configuration.
"""

from objdav.error_printer import ErrorPrinter
from objdav.http_authenticator import HTTPAuthenticator
from objdav.request_server import RequestServer

__docformat__ = "reStructuredText"

# Use these settings, if config file does not define them (or is totally missing)
DEFAULT_VERBOSE = 3
DEFAULT_LOGGER_DATE_FORMAT = "%H:%M:%S"
DEFAULT_LOGGER_FORMAT = "%(asctime)s.%(msecs)03d - %(levelname)-8s: %(message)s"

DEFAULT_CONFIG = {
    "server": "cheroot",
    "server_args": {},
    "host": "localhost",
    "port": 8080,
    #: Backend key prefix that acts as the WebDAV root, e.g. 'webdav/'.
    #: Must be empty or end with '/'. Never visible to clients.
    "root_prefix": "",
    #: True: in-memory ObjectStoreDict. Otherwise a class name, a
    #: {"class": ..., "args": [...], "kwargs": {...}} dict, or an instance
    "object_store": True,
    "add_header_MS_Author_Via": True,
    #: Size of chunks that are read from the backend and sent with GET
    "block_size": 8192,
    "middleware_stack": [
        ErrorPrinter,
        HTTPAuthenticator,
        RequestServer,  # this must be the last middleware item
    ],
    # HTTP Authentication Options
    "http_authenticator": {
        # None: dc.simple_dc.SimpleDomainController(user_mapping)
        "domain_controller": None,
        "realm": "ObjDAV",
    },
    #: Used by SimpleDomainController only
    "simple_dc": {"user_mapping": {}},  # NO access by default
    #: Options for directory listings (PROPFIND with 'Depth: 1')
    "dir_listing": {
        "enable": True,
    },
    #: Verbose Output
    #: 0 - no output
    #: 1 - no output (excepting application exceptions)
    #: 2 - show warnings
    #: 3 - show single line request summaries (for HTTP logging)
    #: 4 - show debug events
    #: 5 - also print the effective configuration on startup
    "verbose": DEFAULT_VERBOSE,
    #: Send only "ObjDAV" (no version numbers) as server banner
    "suppress_version_info": False,
    #: Log options
    "logging": {
        "enable": None,  # True: activate 'objdav' logger (in library mode)
        "logger_date_format": DEFAULT_LOGGER_DATE_FORMAT,
        "logger_format": DEFAULT_LOGGER_FORMAT,
        "enable_loggers": [],
    },
}
