# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Miscellaneous support functions for ObjDAV.

- Logging setup for the ``objdav`` logger hierarchy.
- Access to the nested configuration dict and class loading for the
  ``object_store`` and ``http_authenticator.domain_controller`` options.
- WSGI helpers: request body handling, origin URL, status and multistatus
  responses.
"""

import collections.abc
import importlib
import logging
import mimetypes
import os
import sys
from copy import deepcopy
from email.utils import formatdate
from hashlib import md5

from objdav.dav_error import HTTP_NO_CONTENT, DAVError, get_http_status_string
from objdav.xml_tools import xml_to_bytes

__docformat__ = "reStructuredText"

#: The base logger (silent by default)
BASE_LOGGER_NAME = "objdav"
_logger = logging.getLogger(BASE_LOGGER_NAME)

#: Currently used Python version as string
PYTHON_VERSION = "{}.{}.{}".format(*sys.version_info[:3])


class NO_DEFAULT:
    """Marker for 'no default passed'."""


# ========================================================================
# Strings
# ========================================================================


def to_bytes(s, encoding="utf8"):
    """Convert a text string to bytes."""
    if type(s) is not bytes:
        s = bytes(s, encoding)
    return s


def to_str(s, encoding="utf8"):
    """Convert bytes (e.g. values read from redis) to str."""
    if type(s) is bytes:
        s = str(s, encoding)
    elif type(s) is not str:
        s = str(s)
    return s


def re_encode_wsgi(s, *, encoding="utf-8", fallback=False):
    """Decode a WSGI string (bytes tunneled as latin-1) with `encoding`.

    Clients send UTF-8 paths, but PEP 3333 servers pass them as iso-8859-1.
    If `s` is not valid `encoding` and `fallback` is true, `s` is returned
    unchanged.

    See https://www.python.org/dev/peps/pep-3333/#unicode-issues
    """
    try:
        return s.encode("iso-8859-1").decode(encoding)
    except UnicodeError:
        if fallback:
            return s
        raise


def get_rfc1123_time(secs=None):
    """Return <secs> in rfc 1123 date/time format (pass secs=None for current date)."""
    # Must be locale independent
    return formatdate(timeval=secs, localtime=False, usegmt=True)


# ========================================================================
# Logging
# ========================================================================

#: `verbose` option -> level of the base logger (4 and more: DEBUG)
_LEVEL_BY_VERBOSE = {
    0: logging.CRITICAL,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
}


def init_logging(config):
    """Attach a stdout handler to the 'objdav' logger and set its level.

    The level is taken from the `verbose` option:

    +---------+--------+-------------+------------------------+
    | Verbose | Option | base logger | module logger(enabled) |
    +=========+========+=============+========================+
    |    0    | -qqq   | CRITICAL    | CRITICAL               |
    |    1    | -qq    | ERROR       | ERROR                  |
    |    2    | -q     | WARN        | WARN                   |
    |    3    |        | INFO        | **DEBUG**              |
    |    4    | -v     | DEBUG       | DEBUG                  |
    |    5    | -vv    | DEBUG       | DEBUG                  |
    +---------+--------+-------------+------------------------+

    Module loggers listed in ``logging.enable_loggers`` (e.g.
    ``"request_server"``) log at DEBUG level if verbose is 3 or more.
    Previous handlers of the base logger are removed, so this may be called
    repeatedly.
    """
    from objdav.default_conf import DEFAULT_LOGGER_DATE_FORMAT, DEFAULT_LOGGER_FORMAT

    verbose = config.get("verbose", 3)
    log_opts = config.get("logging") or {}

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            log_opts.get("logger_format", DEFAULT_LOGGER_FORMAT),
            log_opts.get("logger_date_format", DEFAULT_LOGGER_DATE_FORMAT),
        )
    )

    logger = logging.getLogger(BASE_LOGGER_NAME)
    logger.setLevel(_LEVEL_BY_VERBOSE.get(max(verbose, 0), logging.DEBUG))
    # Don't pass records to the root logger's handlers
    logger.propagate = False
    for hdlr in logger.handlers[:]:
        hdlr.close()
        logger.removeHandler(hdlr)
    logger.addHandler(handler)

    if verbose >= 3:
        for name in log_opts.get("enable_loggers") or []:
            get_module_logger(name.strip()).setLevel(logging.DEBUG)


def get_module_logger(module_name):
    """Return a logger below 'objdav', e.g. 'objdav.request_server'.

    @see: init_logging
    """
    if not module_name.startswith(BASE_LOGGER_NAME + "."):
        module_name = f"{BASE_LOGGER_NAME}.{module_name}"
    return logging.getLogger(module_name)


# ========================================================================
# Configuration
# ========================================================================


def get_dict_value(d, key_path, default=NO_DEFAULT, *, as_dict=False):
    """Return a nested value, addressed by a dotted path ('dir_listing.enable').

    Missing keys raise KeyError, unless `default` is passed.
    With `as_dict`, `{}` is returned for missing keys and also for keys
    without value (YAML ``simple_dc:`` followed by nothing).
    """
    value = d
    try:
        for seg in key_path.split("."):
            value = value[seg]
    except (KeyError, TypeError):
        if as_dict:
            return {}
        if default is NO_DEFAULT:
            raise KeyError(key_path) from None
        return default
    if as_dict and value is None:
        return {}
    return value


def deep_update(d, u):
    """Merge the nested dict `u` into `d` (in place) and return `d`."""
    for k, v in u.items():
        if not isinstance(v, collections.abc.Mapping):
            d[k] = v
        elif isinstance(d.get(k), dict):
            deep_update(d[k], v)
        else:
            d[k] = dict(v)
    return d


def purge_passwords(config):
    """Return a copy of `config` with masked credential table passwords."""
    config = deepcopy(config)
    user_map = get_dict_value(config, "simple_dc.user_mapping", as_dict=True)
    for user_name in user_map:
        user_map[user_name] = "<REMOVED>"
    return config


def import_class(name):
    """Return the class for a dotted name, e.g. 'objdav.dc.simple_dc.SimpleDomainController'."""
    module_name, _, class_name = name.rpartition(".")
    if not module_name:
        raise ValueError(f"Expected `path.to.ClassName` string: {name!r}")
    module = importlib.import_module(module_name)
    return getattr(module, class_name)


def instantiate_class(options):
    """Create an object from a class name or a class definition dict.

    `options` is either ``"path.to.ClassName"`` or ::

        {
            "class": "objdav.store.redis_store.ObjectStoreRedis",
            "args": [],
            "kwargs": {"host": "127.0.0.1", "namespace": "dav"},
        }
    """
    if isinstance(options, str):
        options = {"class": options}
    unknown = set(options).difference({"class", "args", "kwargs"})
    if unknown or "class" not in options:
        raise ValueError(
            f"Expected {{'class': ..., 'args': [...], 'kwargs': {{...}}}}, got {options!r}"
        )
    args = options.get("args") or []
    kwargs = options.get("kwargs") or {}
    if not isinstance(args, (list, tuple)) or not isinstance(kwargs, dict):
        raise ValueError(f"Expected `args` list and `kwargs` dict: {options!r}")

    inst = import_class(options["class"])(*args, **kwargs)
    _logger.debug(f"Instantiated {inst!r} from {options['class']!r}")
    return inst


# ========================================================================
# WSGI
# ========================================================================


def get_content_length(environ):
    """Return a positive CONTENT_LENGTH in a safe way (return 0 otherwise)."""
    try:
        return max(0, int(environ.get("CONTENT_LENGTH") or 0))
    except ValueError:
        return 0


def has_request_body(environ):
    """Return True if the client announced a request body.

    ``Content-Length: 0`` counts as an (empty) body. A request with neither
    Content-Length nor chunked Transfer-Encoding has none.
    """
    if environ.get("CONTENT_LENGTH", "") not in ("", None):
        return True
    if "chunked" in environ.get("HTTP_TRANSFER_ENCODING", "").lower():
        return True
    return bool(environ.get("wsgi.input_terminated"))


def read_and_discard_input(environ):
    """Consume a request body that no handler has read.

    This happens if a request is answered before its body was touched (e.g.
    '401 Unauthorized' for a PUT). Clients may miss the response otherwise.
    """
    if environ.get("objdav.some_input_read") or environ.get("objdav.all_input_read"):
        return
    length = get_content_length(environ)
    if not length:
        return
    environ["objdav.some_input_read"] = 1
    try:
        body = environ["wsgi.input"].read(length)
    except OSError as e:
        _logger.error(f"Reading unread request body failed: {e}")
        return
    environ["objdav.all_input_read"] = 1
    _logger.debug(f"Discarded {len(body)} bytes of unread request body")


def fail(kind, context_info=None, *, src_exception=None, add_headers=None):
    """Raise (and log) a DAVError of the given ErrorKind."""
    e = DAVError(
        kind, context_info, src_exception=src_exception, add_headers=add_headers
    )
    _logger.debug(f"Raising DAVError {e.get_user_info()}")
    raise e


class SubAppStartResponse:
    """Stand-in for `start_response` that stores its arguments.

    The outer middleware calls :meth:`forward` once it knows that the inner
    application produced a response without raising.
    """

    def __init__(self):
        self.status = None
        self.response_headers = []
        self.exc_info = None

    def __call__(self, status, response_headers, exc_info=None):
        self.status = status
        self.response_headers = response_headers
        self.exc_info = exc_info

    def forward(self, start_response):
        return start_response(self.status, self.response_headers, self.exc_info)


def make_origin_url(environ):
    """Return 'scheme://host[:port]' of the request (PEP 3333 URL reconstruction)."""
    scheme = environ["wsgi.url_scheme"]
    host = environ.get("HTTP_HOST")
    if not host:
        host = environ["SERVER_NAME"]
        port = environ["SERVER_PORT"]
        if port != {"http": "80", "https": "443"}.get(scheme):
            host += f":{port}"
    return f"{scheme}://{host}"


def send_status_response(environ, start_response, e, *, add_headers=None):
    """Start a response for a status code or DAVError and return the body.

    Success codes are sent with an empty body, DAVErrors with their plain-text
    page and extra headers. '204 No Content' has no Content-Type.
    """
    headers = [("Date", get_rfc1123_time())]
    body = b""
    if isinstance(e, DAVError):
        content_type, body = e.get_response_page()
        headers.append(("Content-Type", content_type))
        headers.extend(e.add_headers or [])
    elif e != HTTP_NO_CONTENT:
        headers.append(("Content-Type", "text/plain; charset=utf-8"))
    headers.append(("Content-Length", str(len(body))))
    headers.extend(add_headers or [])

    start_response(get_http_status_string(e), headers)
    return [body]


def send_multi_status_response(environ, start_response, multistatus_el):
    """Send a '207 Multi-Status' response for a <multistatus> element."""
    xml_data = xml_to_bytes(multistatus_el)
    start_response(
        "207 Multi-Status",
        [
            ("Content-Type", "application/xml; charset=utf-8"),
            ("Content-Length", str(len(xml_data))),
            ("Date", get_rfc1123_time()),
        ],
    )
    return [xml_data]


# ========================================================================
# Objects
# ========================================================================


def calc_hexdigest(data):
    """Return the md5 hex digest of `data`, used as ETag by the bundled stores."""
    return md5(to_bytes(data)).hexdigest()


def checked_etag(etag, *, allow_none=False):
    """Return `etag` if it is a bare entity tag, raise ValueError otherwise.

    Stores must not add quotes or a weak marker (W/"..."), because the value
    is sent as ``ETag: "<etag>"``.
    """
    if etag is None and allow_none:
        return None
    etag = etag.strip()
    if not etag or '"' in etag or etag.startswith("W/"):
        raise ValueError(f"Invalid ETag format: {etag!r}.")
    return etag


#: Extensions that `mimetypes` does not know on all platforms
_MIME_TYPES = {
    ".md": "text/markdown",
    ".yml": "application/yaml",
    ".yaml": "application/yaml",
    ".webm": "video/webm",
    ".ogg": "audio/ogg",
}


def guess_mime_type(key):
    """Return the mime type for the extension of `key` (default: octet-stream)."""
    mimetype, _encoding = mimetypes.guess_type(key)
    if not mimetype:
        mimetype = _MIME_TYPES.get(os.path.splitext(key)[1].lower())
    return mimetype or "application/octet-stream"
