# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
    Test helpers.

Example:
    app = make_objdav_app(root_prefix="webdav/")
    environ = make_environ("PUT", "/readme.txt", headers=auth_headers())
"""

import base64
import io
from wsgiref.util import setup_testing_defaults

from objdav.objdav_app import ObjDAVApp
from objdav.store.base_store import ObjectStoreError
from objdav.store.memory_store import ObjectStoreDict

TEST_USER = "tester"
TEST_PASSWORD = "secret"


def make_objdav_app(*, store=None, root_prefix="", dir_listing=True, **extra):
    """Return an ObjDAVApp that serves `store` (a new ObjectStoreDict by default)."""
    if store is None:
        store = ObjectStoreDict()
    config = {
        "object_store": store,
        "root_prefix": root_prefix,
        "simple_dc": {"user_mapping": {TEST_USER: TEST_PASSWORD}},
        "dir_listing": {"enable": dir_listing},
        "verbose": 1,
        "logging": {"enable": False},
    }
    config.update(extra)
    return ObjDAVApp(config)


def basic_auth_value(user_name=TEST_USER, password=TEST_PASSWORD):
    token = base64.b64encode(f"{user_name}:{password}".encode("utf-8"))
    return "Basic " + token.decode("ascii")


def auth_headers(user_name=TEST_USER, password=TEST_PASSWORD, **extra):
    """Return a header dict with Basic credentials (and optional extra headers)."""
    headers = {"Authorization": basic_auth_value(user_name, password)}
    headers.update(extra)
    return headers


# ========================================================================
# Plain WSGI calls
# ========================================================================


def make_environ(method, path, *, headers=None, body=None):
    """Return a minimal WSGI environ.

    CONTENT_LENGTH is only set if `body` is passed, so requests without any
    body can be simulated.
    """
    environ = {"REQUEST_METHOD": method, "PATH_INFO": path}
    setup_testing_defaults(environ)
    environ.pop("CONTENT_LENGTH", None)
    for name, value in (headers or {}).items():
        environ["HTTP_" + name.upper().replace("-", "_")] = value
    if body is not None:
        environ["CONTENT_LENGTH"] = str(len(body))
        environ["wsgi.input"] = io.BytesIO(body)
    else:
        environ["wsgi.input"] = io.BytesIO(b"")
    return environ


def call_wsgi(app, environ):
    """Call a WSGI app and return (status, headers dict, body)."""
    result = {}

    def start_response(status, response_headers, exc_info=None):
        result["status"] = status
        result["headers"] = dict(response_headers)

    app_iter = app(environ, start_response)
    try:
        body = b"".join(app_iter)
    finally:
        if hasattr(app_iter, "close"):
            app_iter.close()
    return result["status"], result["headers"], body


# ========================================================================
# Stores with injected failures
# ========================================================================


class FailingPutStore(ObjectStoreDict):
    """In-memory store that rejects writes to keys starting with `fail_prefix`."""

    def __init__(self, fail_prefix="readonly/"):
        super().__init__()
        self.fail_prefix = fail_prefix
        self.deleted = []

    def put(self, key, data, metadata=None):
        if key.startswith(self.fail_prefix):
            raise ObjectStoreError(f"simulated write failure for {key!r}")
        return super().put(key, data, metadata)

    def delete(self, keys):
        self.deleted.append(keys)
        return super().delete(keys)


class BrokenStore(ObjectStoreDict):
    """In-memory store where every read operation fails."""

    def head(self, key):
        raise ObjectStoreError("backend unavailable")

    def get(self, key):
        raise ObjectStoreError("backend unavailable")

    def list(self, prefix="", delimiter=None):
        raise ObjectStoreError("backend unavailable")


class CountingStore(ObjectStoreDict):
    """In-memory store that counts backend calls."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def head(self, key):
        self.calls.append(("head", key))
        return super().head(key)

    def get(self, key):
        self.calls.append(("get", key))
        return super().get(key)

    def put(self, key, data, metadata=None):
        self.calls.append(("put", key))
        return super().put(key, data, metadata)

    def delete(self, keys):
        self.calls.append(("delete", keys))
        return super().delete(keys)

    def list(self, prefix="", delimiter=None):
        self.calls.append(("list", prefix, delimiter))
        return super().list(prefix, delimiter)
