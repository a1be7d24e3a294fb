# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Implements a DAVError class that is used to signal WebDAV and HTTP errors.

Every failure that a handler or middleware raises carries one of the
:class:`ErrorKind` values. The set of kinds is closed and ``STATUS_BY_KIND``
maps each of them to exactly one HTTP status code, so the translation from
failure to response is decided in one place.
"""

import enum

__docformat__ = "reStructuredText"

# ========================================================================
# List of HTTP Response Codes.
# ========================================================================
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_MULTI_STATUS = 207

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_METHOD_NOT_ALLOWED = 405

HTTP_INTERNAL_ERROR = 500

# ========================================================================
# if ERROR_DESCRIPTIONS exists for an error code, the error description will be
# sent as the error response code.
# Otherwise only the numeric code itself is sent.
# ========================================================================
ERROR_DESCRIPTIONS = {
    HTTP_OK: "200 OK",
    HTTP_CREATED: "201 Created",
    HTTP_NO_CONTENT: "204 No Content",
    HTTP_MULTI_STATUS: "207 Multi-Status",
    HTTP_BAD_REQUEST: "400 Bad Request",
    HTTP_UNAUTHORIZED: "401 Unauthorized",
    HTTP_FORBIDDEN: "403 Forbidden",
    HTTP_NOT_FOUND: "404 Not Found",
    HTTP_METHOD_NOT_ALLOWED: "405 Method Not Allowed",
    HTTP_INTERNAL_ERROR: "500 Internal Server Error",
}

# ========================================================================
# Default text for error bodies, if no context_info is passed.
# ========================================================================
ERROR_RESPONSES = {
    HTTP_BAD_REQUEST: "An invalid request was specified",
    HTTP_UNAUTHORIZED: "Authorization required",
    HTTP_NOT_FOUND: "The specified resource was not found",
    HTTP_FORBIDDEN: "Access denied to the specified resource",
    HTTP_INTERNAL_ERROR: "An internal server error occurred",
}


# ========================================================================
# Error kinds
# ========================================================================
class ErrorKind(enum.Enum):
    """Closed set of failure kinds a request can end with."""

    #: No or malformed credentials
    AUTH_REQUIRED = "auth-required"
    #: Unknown user or password mismatch
    AUTH_REJECTED = "auth-rejected"
    #: Missing object or copy/move source
    NOT_FOUND = "not-found"
    #: Missing body, directory misuse, invalid header values
    BAD_REQUEST = "bad-request"
    #: Operation disabled by configuration (e.g. directory listing)
    FORBIDDEN = "forbidden"
    #: Unrecognized verb
    METHOD_NOT_ALLOWED = "method-not-allowed"
    #: Any failure reported by (or unexpected while talking to) the backend
    BACKEND_FAILURE = "backend-failure"


STATUS_BY_KIND = {
    ErrorKind.AUTH_REQUIRED: HTTP_UNAUTHORIZED,
    ErrorKind.AUTH_REJECTED: HTTP_FORBIDDEN,
    ErrorKind.NOT_FOUND: HTTP_NOT_FOUND,
    ErrorKind.BAD_REQUEST: HTTP_BAD_REQUEST,
    ErrorKind.FORBIDDEN: HTTP_FORBIDDEN,
    ErrorKind.METHOD_NOT_ALLOWED: HTTP_METHOD_NOT_ALLOWED,
    ErrorKind.BACKEND_FAILURE: HTTP_INTERNAL_ERROR,
}

# Every kind must have a status code
assert set(STATUS_BY_KIND) == set(ErrorKind), "STATUS_BY_KIND is incomplete"


# ========================================================================
# DAVError
# ========================================================================
class DAVError(Exception):
    """General error class that is used to signal HTTP and WEBDAV errors.

    Args:
        kind (ErrorKind): failure kind; determines the HTTP status code
        context_info (str): optional message that is sent to the client
        src_exception (Exception): optional original exception
        add_headers (list): optional list of (name, value) response headers
    """

    def __init__(self, kind, context_info=None, *, src_exception=None, add_headers=None):
        if not isinstance(kind, ErrorKind):
            raise TypeError(f"Expected ErrorKind, got {kind!r}")
        self.kind = kind
        self.value = STATUS_BY_KIND[kind]
        self.context_info = context_info
        self.src_exception = src_exception
        self.add_headers = add_headers
        super().__init__(self.get_user_info())

    def __repr__(self):
        return f"DAVError({self.get_user_info()})"

    def __str__(self):
        return self.get_user_info()

    def get_user_info(self):
        """Return readable string."""
        s = get_http_status_string(self.value)

        if self.context_info:
            s += f": {self.context_info}"
        elif self.src_exception is not None:
            s += f": {self.src_exception}"
        elif self.value in ERROR_RESPONSES:
            s += f": {ERROR_RESPONSES[self.value]}"
        return s

    def get_response_page(self):
        """Return a tuple (content-type, response page).

        Error bodies are plain text. For backend failures the raw text of the
        source exception is included.
        """
        body = self.get_user_info()
        if self.context_info and self.src_exception is not None:
            body += f"\n{self.src_exception}"
        return ("text/plain; charset=utf-8", (body + "\n").encode("utf-8"))


def get_http_status_code(v):
    """Return HTTP response code as integer, e.g. 204."""
    if hasattr(v, "value"):
        return int(v.value)  # v is a DAVError
    return int(v)


def get_http_status_string(v):
    """Return HTTP response string, e.g. 204 -> ('204 No Content').
    The return string always includes descriptive text, to satisfy WSGI
    linters and strict clients.

    `v`: status code or DAVError
    """
    code = get_http_status_code(v)
    try:
        return ERROR_DESCRIPTIONS[code]
    except KeyError:
        return f"{code} Status"


def as_DAVError(e):
    """Convert any non-DAVError exception to a BACKEND_FAILURE DAVError."""
    if isinstance(e, DAVError):
        return e
    elif isinstance(e, Exception):
        return DAVError(ErrorKind.BACKEND_FAILURE, src_exception=e)
    return DAVError(ErrorKind.BACKEND_FAILURE, f"{e}")
