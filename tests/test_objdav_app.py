# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Unit test for objdav HTTP request functionality

This test suite uses webtest.TestApp to send fake requests to the WSGI
stack.

See http://webtest.readthedocs.org/en/latest/
    (successor of http://pythonpaste.org/testing-applications.html)
"""

import sys
import unittest
from io import BytesIO
from unittest import mock
from urllib.parse import urlparse

import pytest

from objdav.objdav_app import ObjDAVApp
from objdav.store.memory_store import ObjectStoreDict
from objdav.xml_tools import string_to_xml
from tests.util import (
    BrokenStore,
    CountingStore,
    FailingPutStore,
    auth_headers,
    call_wsgi,
    make_environ,
    make_objdav_app,
)

try:
    import webtest
except ImportError:
    print("*" * 70, file=sys.stderr)
    print("Could not import webtest.TestApp: some tests will fail.", file=sys.stderr)
    print("Try 'pip install WebTest' to run these tests.", file=sys.stderr)
    print("*" * 70, file=sys.stderr)
    raise pytest.skip(
        "Skip tests that require WebTest", allow_module_level=True
    ) from None

NS = "{DAV:}"


def _parse_multistatus(res):
    """Return a list of (path, is_collection, size) tuples from a 207 response."""
    assert res.status_int == 207
    assert res.content_type == "application/xml"
    root = string_to_xml(res.body)
    assert root.tag == NS + "multistatus"
    entries = []
    for response_el in root.findall(NS + "response"):
        href = response_el.findtext(NS + "href")
        prop_el = response_el.find(f"{NS}propstat/{NS}prop")
        is_collection = prop_el.find(f"{NS}resourcetype/{NS}collection") is not None
        size = int(prop_el.findtext(NS + "getcontentlength"))
        entries.append((urlparse(href).path, is_collection, size))
    return entries


# ========================================================================
# ServerTest
# ========================================================================


class ServerTest(unittest.TestCase):
    """Test objdav_app using webtest."""

    def setUp(self):
        self.store = ObjectStoreDict()
        self.app = webtest.TestApp(make_objdav_app(store=self.store))
        self.auth = auth_headers()

    def tearDown(self):
        del self.app
        self.store.clear()

    def _put(self, path, data, **headers):
        h = dict(self.auth)
        h.update(headers)
        return self.app.put(path, params=data, headers=h, status=201)

    def _propfind(self, path, depth=None, status=207):
        headers = dict(self.auth)
        if depth is not None:
            headers["Depth"] = depth
        return self.app.request(
            path, method="PROPFIND", headers=headers, status=status
        )

    def testPreconditions(self):
        """Environment must be set."""
        self.assertTrue(
            __debug__, "__debug__ must be True, otherwise asserts are ignored"
        )

    def testGetPut(self):
        """Read and write file contents."""
        app = self.app

        # Prepare file content
        data1 = b"this is a file\nwith two lines"
        data2 = b"this is another file\nwith three lines\nsee?"
        # Big file with 1 MB
        line = b"." * (1000 - len(b"\n")) + b"\n"
        data3 = line * 1000

        self._put("/file1.txt", data1)
        res = app.get("/file1.txt", headers=self.auth, status=200)
        assert res.body == data1
        assert res.headers["Content-Length"] == str(len(data1))

        # Overwrite
        self._put("/file1.txt", data2)
        res = app.get("/file1.txt", headers=self.auth, status=200)
        assert res.body == data2

        self._put("/big.txt", data3)
        res = app.get("/big.txt", headers=self.auth, status=200)
        assert res.body == data3
        assert int(res.headers["Content-Length"]) == len(data3)

        # Empty body is a valid body
        self._put("/empty.txt", b"")
        res = app.get("/empty.txt", headers=self.auth, status=200)
        assert res.body == b""
        assert self.store.head("empty.txt").size == 0

        # Not found
        app.get("/not-existing.txt", headers=self.auth, status=404)

    def testEncoding(self):
        """Handle special characters."""
        app = self.app
        data = b"umlauts"
        self._put("/f%C3%BC%C3%9Fe%20(1).txt", data)
        assert self.store.head("füße (1).txt") is not None

        res = app.get("/f%C3%BC%C3%9Fe%20(1).txt", headers=self.auth, status=200)
        assert res.body == data

        entries = _parse_multistatus(self._propfind("/", depth="1"))
        assert ("/f%C3%BC%C3%9Fe%20(1).txt", False, len(data)) in entries

    def testGetHeaders(self):
        """GET and HEAD return stored meta data."""
        app = self.app
        self._put(
            "/doc.txt",
            b"hello world",
            **{
                "Content-Type": "text/x-custom",
                "Content-Language": "de",
                "Cache-Control": "no-cache",
            },
        )
        res = app.get("/doc.txt", headers=self.auth, status=200)
        assert res.headers["Content-Type"] == "text/x-custom"
        assert res.headers["Content-Language"] == "de"
        assert res.headers["Cache-Control"] == "no-cache"
        assert res.headers["ETag"] == '"5eb63bbbe01eeed093cb22bb8f5acdc3"'
        assert "Last-Modified" in res.headers

        res = app.head("/doc.txt", headers=self.auth, status=200)
        assert res.body == b""
        assert res.headers["Content-Length"] == "11"
        assert res.headers["Content-Type"] == "text/x-custom"
        assert res.headers["ETag"] == '"5eb63bbbe01eeed093cb22bb8f5acdc3"'

        app.head("/missing.txt", headers=self.auth, status=404)

    def testStreaming(self):
        """GET is sent in chunks of `block_size`."""
        store = ObjectStoreDict()
        app = webtest.TestApp(make_objdav_app(store=store, block_size=7))
        data = b"0123456789" * 10
        app.put("/s.bin", params=data, headers=self.auth, status=201)
        res = app.get("/s.bin", headers=self.auth, status=200)
        assert res.body == data

    def testGetDirectory(self):
        """GET/HEAD on a directory key is a bad request, regardless of backend state."""
        app = self.app
        app.get("/", headers=self.auth, status=400)
        app.get("/no-such-dir/", headers=self.auth, status=400)
        app.head("/no-such-dir/", headers=self.auth, status=400)

        app.request("/dir/", method="MKCOL", headers=self.auth, status=201)
        self._put("/dir/file.txt", b"x")
        res = app.get("/dir/", headers=self.auth, status=400)
        assert "Cannot GET a directory" in res.text
        assert res.content_type == "text/plain"

    def testPropfindListing(self):
        """Depth 1 lists files and sub collections exactly once."""
        self._put("/a/b.txt", b"bbb")
        self._put("/a/c/d.txt", b"ddd")

        entries = _parse_multistatus(self._propfind("/a/", depth="1"))
        assert entries == [
            ("/a/", True, 0),
            ("/a/b.txt", False, 3),
            ("/a/c/", True, 0),
        ]

        # Default depth is 1, 'infinity' is treated as 1
        assert _parse_multistatus(self._propfind("/a/")) == entries
        assert _parse_multistatus(self._propfind("/a/", depth="infinity")) == entries

        # An explicit marker does not produce duplicates
        self.app.request("/a/", method="MKCOL", headers=self.auth, status=201)
        self.app.request("/a/c/", method="MKCOL", headers=self.auth, status=201)
        assert _parse_multistatus(self._propfind("/a/", depth="1")) == entries

        # Root
        entries = _parse_multistatus(self._propfind("/", depth="1"))
        assert entries == [("/", True, 0), ("/a/", True, 0)]

    def testPropfindDepth0(self):
        self._put("/a/b.txt", b"bbb")

        entries = _parse_multistatus(self._propfind("/a/", depth="0"))
        assert entries == [("/a/", True, 0)]

        entries = _parse_multistatus(self._propfind("/a/b.txt", depth="0"))
        assert entries == [("/a/b.txt", False, 3)]

        res = self._propfind("/a/b.txt", depth="0")
        root = string_to_xml(res.body)
        etag = root.findtext(f"{NS}response/{NS}propstat/{NS}prop/{NS}getetag")
        assert etag == '"{}"'.format(self.store.head("a/b.txt").etag)

        self._propfind("/a/missing.txt", depth="0", status=404)

        # A collection requested without trailing slash
        entries = _parse_multistatus(self._propfind("/a", depth="0"))
        assert entries == [("/a/", True, 0)]

        self._propfind("/a", depth="1")
        self._propfind("/nothing", depth="1", status=404)

    def testPropfindInvalidDepth(self):
        self._propfind("/", depth="2", status=400)
        self._propfind("/", depth="one", status=400)

    def testMkcol(self):
        """MKCOL is idempotent and writes one zero-length marker."""
        app = self.app
        app.request("/new", method="MKCOL", headers=self.auth, status=201)
        app.request("/new/", method="MKCOL", headers=self.auth, status=201)

        listing = self.store.list(prefix="new")
        assert [o.key for o in listing.objects] == ["new/"]
        assert listing.objects[0].size == 0

        entries = _parse_multistatus(self._propfind("/", depth="1"))
        assert entries == [("/", True, 0), ("/new/", True, 0)]

        # The root collection needs no marker
        app.request("/", method="MKCOL", headers=self.auth, status=201)
        assert self.store.head("") is None

    def testDelete(self):
        app = self.app
        self._put("/a/b.txt", b"b")
        self._put("/a/c/d.txt", b"d")
        self._put("/a.txt", b"sibling")
        app.request("/a/", method="MKCOL", headers=self.auth, status=201)

        app.delete("/a/", headers=self.auth, status=204)
        assert self.store.list(prefix="a/").is_empty()
        assert self.store.head("a.txt") is not None

        app.delete("/a.txt", headers=self.auth, status=204)
        assert self.store.head("a.txt") is None

        # Deleting missing resources succeeds
        app.delete("/a.txt", headers=self.auth, status=204)
        app.delete("/no-dir/", headers=self.auth, status=204)

    def testDeleteWithoutSlashKeepsCollection(self):
        """'DELETE /a' addresses the object 'a', not the collection 'a/'."""
        app = self.app
        self._put("/a/b.txt", b"b")

        app.delete("/a", headers=self.auth, status=204)
        assert self.store.head("a/b.txt") is not None
        # PROPFIND still finds the collection
        entries = _parse_multistatus(self._propfind("/a", depth="0"))
        assert entries == [("/a/", True, 0)]

    def testPutToCollection(self):
        app = self.app
        res = app.put("/a/", params=b"payload", headers=self.auth, status=400)
        assert b"Cannot PUT to a collection" in res.body
        assert self.store.head("a/") is None

        app.request("/a/", method="MKCOL", headers=self.auth, status=201)
        app.put("/a/", params=b"payload", headers=self.auth, status=400)
        assert self.store.head("a/").size == 0

    def testCopyMove(self):
        app = self.app
        self._put("/src.txt", b"payload", **{"Content-Type": "text/x-custom"})

        headers = dict(self.auth, Destination="http://localhost/copy.txt")
        app.request("/src.txt", method="COPY", headers=headers, status=201)
        res1 = app.get("/src.txt", headers=self.auth, status=200)
        res2 = app.get("/copy.txt", headers=self.auth, status=200)
        assert res1.body == res2.body == b"payload"
        assert res2.headers["Content-Type"] == "text/x-custom"

        headers = dict(self.auth, Destination="http://localhost/sub/moved.txt")
        app.request("/copy.txt", method="MOVE", headers=headers, status=204)
        app.get("/copy.txt", headers=self.auth, status=404)
        res = app.get("/sub/moved.txt", headers=self.auth, status=200)
        assert res.body == b"payload"

        # Missing source
        headers = dict(self.auth, Destination="http://localhost/x.txt")
        app.request("/missing.txt", method="COPY", headers=headers, status=404)
        app.request("/missing.txt", method="MOVE", headers=headers, status=404)
        assert self.store.head("x.txt") is None

        # Missing Destination header
        app.request("/src.txt", method="COPY", headers=self.auth, status=400)

        # Collections are not supported
        headers = dict(self.auth, Destination="http://localhost/b/")
        app.request("/sub/", method="COPY", headers=headers, status=400)
        app.request("/src.txt", method="MOVE", headers=headers, status=400)
        assert self.store.head("src.txt") is not None

    def testOptions(self):
        store = CountingStore()
        app = webtest.TestApp(make_objdav_app(store=store))
        res = app.options("/any/path", headers=self.auth, status=200)
        assert res.headers["DAV"] == "1"
        assert res.headers["Allow"] == (
            "OPTIONS, GET, HEAD, PUT, DELETE, PROPFIND, MKCOL, COPY, MOVE"
        )
        assert res.headers["MS-Author-Via"] == "DAV"
        assert store.calls == []

    def testMethodNotAllowed(self):
        app = self.app
        app.request("/", method="LOCK", headers=self.auth, status=405)
        app.request("/x", method="PROPPATCH", headers=self.auth, status=405)
        res = app.request("/x", method="TRACE", headers=self.auth, status=405)
        assert res.content_type == "text/plain"

    def testAuthentication(self):
        """Require Basic credentials for every request."""
        app = self.app

        res = app.get("/file.txt", status=401)
        assert res.headers["WWW-Authenticate"] == 'Basic realm="ObjDAV"'
        assert res.content_type == "text/plain"

        # OPTIONS and unknown methods are not exempted
        app.options("/", status=401)
        app.request("/", method="LOCK", status=401)

        # Malformed or unsupported
        for value in ("Basic", "Basic !!!not-base64!!!", "Digest username=x", "Bearer x"):
            res = app.get("/file.txt", headers={"Authorization": value}, status=401)
            assert "WWW-Authenticate" in res.headers
        # Valid base64, but no ':'
        app.get("/", headers={"Authorization": "Basic dGVzdGVy"}, status=401)

        # Wrong password or unknown user
        res = app.get(
            "/file.txt", headers=auth_headers(password="wrong"), status=403
        )
        assert "WWW-Authenticate" not in res.headers
        app.get("/file.txt", headers=auth_headers(user_name="nobody"), status=403)
        app.put(
            "/file.txt",
            params=b"data",
            headers=auth_headers(password="wrong"),
            status=403,
        )
        assert self.store.head("file.txt") is None

        # Correct credentials: handler runs
        app.put("/file.txt", params=b"data", headers=self.auth, status=201)
        app.get("/file.txt", headers=self.auth, status=200)

    def testRootPrefix(self):
        """The root prefix is used for keys, but never visible to clients."""
        store = ObjectStoreDict()
        store.put("other/secret.txt", b"outside")
        app = webtest.TestApp(make_objdav_app(store=store, root_prefix="webdav/"))

        app.put("/a/b.txt", params=b"bbb", headers=self.auth, status=201)
        assert store.head("webdav/a/b.txt").size == 3
        app.request("/docs", method="MKCOL", headers=self.auth, status=201)
        assert store.head("webdav/docs/") is not None

        res = app.request(
            "/", method="PROPFIND", headers=dict(self.auth, Depth="1"), status=207
        )
        assert _parse_multistatus(res) == [
            ("/", True, 0),
            ("/a/", True, 0),
            ("/docs/", True, 0),
        ]

        headers = dict(self.auth, Destination="http://localhost/c.txt")
        app.request("/a/b.txt", method="MOVE", headers=headers, status=204)
        assert store.head("webdav/c.txt") is not None
        assert store.head("webdav/a/b.txt") is None

        app.get("/other/secret.txt", headers=self.auth, status=404)

        app.delete("/", headers=self.auth, status=204)
        assert store.list(prefix="webdav/").is_empty()
        assert store.head("other/secret.txt") is not None

    def testDirListingDisabled(self):
        store = ObjectStoreDict()
        app = webtest.TestApp(make_objdav_app(store=store, dir_listing=False))
        app.put("/a/b.txt", params=b"bbb", headers=self.auth, status=201)

        headers = dict(self.auth, Depth="1")
        app.request("/a/", method="PROPFIND", headers=headers, status=403)
        headers = dict(self.auth, Depth="0")
        res = app.request("/a/", method="PROPFIND", headers=headers, status=207)
        assert _parse_multistatus(res) == [("/a/", True, 0)]
        res = app.request("/a/b.txt", method="PROPFIND", headers=headers, status=207)
        assert _parse_multistatus(res) == [("/a/b.txt", False, 3)]

    def testBackendFailure(self):
        app = webtest.TestApp(make_objdav_app(store=BrokenStore()))
        res = app.get("/file.txt", headers=self.auth, status=500)
        assert "backend unavailable" in res.text
        assert res.content_type == "text/plain"
        app.request("/", method="PROPFIND", headers=self.auth, status=500)
        app.delete("/dir/", headers=self.auth, status=500)

    def testCopyDestinationWriteFails(self):
        """A failed destination write leaves the source untouched."""
        store = FailingPutStore("readonly/")
        app = webtest.TestApp(make_objdav_app(store=store))
        app.put("/a.txt", params=b"keep me", headers=self.auth, status=201)

        headers = dict(self.auth, Destination="http://localhost/readonly/a.txt")
        res = app.request("/a.txt", method="MOVE", headers=headers, status=500)
        assert "Destination write failed" in res.text
        assert "simulated write failure" in res.text
        assert store.deleted == []

        res = app.get("/a.txt", headers=self.auth, status=200)
        assert res.body == b"keep me"
        assert store.head("readonly/a.txt") is None

        app.request("/a.txt", method="COPY", headers=headers, status=500)


# ========================================================================
# PlainWsgiTest
# ========================================================================


class PlainWsgiTest(unittest.TestCase):
    """Requests that cannot be expressed with webtest (no body at all, chunked)."""

    def setUp(self):
        self.store = ObjectStoreDict()
        self.app = make_objdav_app(store=self.store)
        self.auth = auth_headers()

    def testPutWithoutBody(self):
        environ = make_environ("PUT", "/x.txt", headers=self.auth)
        status, headers, body = call_wsgi(self.app, environ)
        assert status == "400 Bad Request"
        assert headers["Content-Type"].startswith("text/plain")
        assert b"Request body is required" in body
        assert self.store.head("x.txt") is None

    def testDoubleLeadingSlash(self):
        environ = make_environ("PUT", "//x.txt", headers=self.auth, body=b"data")
        status, _headers, _body = call_wsgi(self.app, environ)
        assert status == "201 Created"
        assert self.store.head("/x.txt").size == 4
        assert self.store.head("x.txt") is None

        environ = make_environ("GET", "//x.txt", headers=self.auth)
        status, _headers, body = call_wsgi(self.app, environ)
        assert status == "200 OK"
        assert body == b"data"
        environ = make_environ("GET", "/x.txt", headers=self.auth)
        status, _headers, _body = call_wsgi(self.app, environ)
        assert status == "404 Not Found"

    def testPutChunked(self):
        environ = make_environ(
            "PUT", "/c.txt", headers=dict(self.auth, **{"Transfer-Encoding": "chunked"})
        )
        environ["wsgi.input"] = BytesIO(b"chunky data")
        status, _headers, _body = call_wsgi(self.app, environ)
        assert status == "201 Created"
        obj = self.store.get("c.txt")
        assert obj.read_all() == b"chunky data"

    def testPutGuessesContentType(self):
        environ = make_environ("PUT", "/page.html", headers=self.auth, body=b"<p/>")
        status, _headers, _body = call_wsgi(self.app, environ)
        assert status == "201 Created"
        assert self.store.head("page.html").http_metadata["Content-Type"] == "text/html"

        environ = make_environ("GET", "/page.html", headers=self.auth)
        status, headers, body = call_wsgi(self.app, environ)
        assert status == "200 OK"
        assert headers["Content-Type"] == "text/html"
        assert body == b"<p/>"


# ========================================================================
# ConfigTest
# ========================================================================


class ConfigTest(unittest.TestCase):
    def _make(self, **opts):
        config = {
            "simple_dc": {"user_mapping": {"tester": "secret"}},
            "verbose": 1,
            "logging": {"enable": False},
        }
        config.update(opts)
        return ObjDAVApp(config)

    def testDefaults(self):
        app = self._make()
        assert isinstance(app.store, ObjectStoreDict)
        assert app.dav_config.root_prefix == ""
        assert app.dav_config.realm == "ObjDAV"

    def testInvalidOptions(self):
        self.assertRaises(ValueError, self._make, root_prefix="webdav")
        self.assertRaises(ValueError, self._make, root_prefix="/webdav/")
        self.assertRaises(ValueError, self._make, block_size=0)
        self.assertRaises(ValueError, self._make, basePath="webdav/")
        self.assertRaises(
            ValueError, self._make, simple_dc={"user_mapping": {"tester": {"x": 1}}}
        )
        self.assertRaises(ValueError, self._make, object_store=False)

    def testObjectStoreByName(self):
        app = self._make(object_store="objdav.store.memory_store.ObjectStoreDict")
        assert isinstance(app.store, ObjectStoreDict)
        app = self._make(
            object_store={"class": "objdav.store.memory_store.ObjectStoreDict"}
        )
        assert isinstance(app.store, ObjectStoreDict)
        self.assertRaises(ValueError, self._make, object_store=object())

    def testMiddlewareStack(self):
        app = self._make()
        names = [mw.__class__.__name__ for mw in app.middleware]
        assert names == ["ErrorPrinter", "HTTPAuthenticator", "RequestServer"]
        assert app.application is app.middleware[0]
        assert app.middleware[-1].next_app is None
        # Only middleware classes are accepted
        self.assertRaises(
            ValueError,
            self._make,
            middleware_stack=["objdav.error_printer.ErrorPrinter"],
        )

    def testClose(self):
        store = ObjectStoreDict()
        app = self._make(object_store=store)
        with mock.patch.object(store, "close") as close:
            app.close()
        close.assert_called_once_with()
