# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
WSGI application that handles one single WebDAV request.

This is the last item of the middleware stack. It resolves the request path
to a store key and dispatches to one ``do_METHOD()`` handler per verb. Each
handler translates the request into one or more calls to the object store.

Handlers signal failures by raising :class:`~objdav.dav_error.DAVError`.
:class:`~objdav.store.base_store.ObjectStoreError` raised by the store is
converted to ``ErrorKind.BACKEND_FAILURE``.
"""

from objdav import util
from objdav.dav_error import HTTP_CREATED, HTTP_NO_CONTENT, ErrorKind
from objdav.multistatus import make_multistatus
from objdav.mw.base_mw import BaseMiddleware
from objdav.resource import ResourceDescriptor
from objdav.store.base_store import CONTENT_METADATA_HEADERS, ObjectStoreError
from objdav.util import checked_etag

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

DEFAULT_BLOCK_SIZE = 8192

#: Verbs that have a ``do_<VERB>`` handler (in the order of the 'Allow' header)
SUPPORTED_METHODS = (
    "OPTIONS",
    "GET",
    "HEAD",
    "PUT",
    "DELETE",
    "PROPFIND",
    "MKCOL",
    "COPY",
    "MOVE",
)

#: WebDAV compliance class ('1': no locking)
DAV_COMPLIANCE_LEVEL = "1"

#: Map CGI environ names of the PUT request to stored content headers
_ENVIRON_BY_HEADER = {
    "Content-Type": "CONTENT_TYPE",
    "Content-Language": "HTTP_CONTENT_LANGUAGE",
    "Content-Disposition": "HTTP_CONTENT_DISPOSITION",
    "Content-Encoding": "HTTP_CONTENT_ENCODING",
    "Cache-Control": "HTTP_CACHE_CONTROL",
    "Expires": "HTTP_EXPIRES",
}
assert set(_ENVIRON_BY_HEADER) == set(CONTENT_METADATA_HEADERS)


# ========================================================================
# RequestServer
# ========================================================================
class RequestServer(BaseMiddleware):
    def __init__(self, objdav_app, next_app, config):
        super().__init__(objdav_app, next_app, config)
        self.store = objdav_app.store
        self.dav_config = objdav_app.dav_config
        self.resolver = objdav_app.resolver
        self.block_size = self.dav_config.block_size or DEFAULT_BLOCK_SIZE

    def __call__(self, environ, start_response):
        request_method = environ["REQUEST_METHOD"]

        # Convert 'infinity' to a common case
        if environ.get("HTTP_DEPTH") is not None:
            environ["HTTP_DEPTH"] = environ["HTTP_DEPTH"].strip().lower()

        # Dispatch HTTP request methods to 'do_METHOD()' handlers
        method = None
        if request_method in SUPPORTED_METHODS:
            method = getattr(self, f"do_{request_method}", None)
        if not method:
            _logger.error(f"Invalid HTTP method {request_method!r}")
            self._fail(ErrorKind.METHOD_NOT_ALLOWED, request_method)

        app_iter = None
        try:
            app_iter = method(environ, start_response)
            yield from app_iter
        except ObjectStoreError as e:
            _logger.error(f"{request_method} {environ['PATH_INFO']!r}: {e}")
            self._fail(ErrorKind.BACKEND_FAILURE, src_exception=e)
        finally:
            if hasattr(app_iter, "close"):
                app_iter.close()
        return

    def _fail(self, kind, context_info=None, src_exception=None, add_headers=None):
        """Wrapper to raise (and log) DAVError."""
        util.fail(
            kind,
            context_info,
            src_exception=src_exception,
            add_headers=add_headers,
        )

    def _resolve(self, environ, *, as_dir=False):
        return self.resolver.resolve(environ["PATH_INFO"], as_dir=as_dir)

    def _get_depth(self, environ):
        """Return the Depth header as '0' or '1' ('infinity' is served as '1')."""
        depth = environ.get("HTTP_DEPTH") or "1"
        if depth == "infinity":
            depth = "1"
        if depth not in ("0", "1"):
            self._fail(ErrorKind.BAD_REQUEST, f"Invalid Depth header: {depth!r}")
        return depth

    # --- PROPFIND -----------------------------------------------------------

    def do_PROPFIND(self, environ, start_response):
        """
        @see http://www.webdav.org/specs/rfc4918.html#METHOD_PROPFIND

        Only the live properties getlastmodified, getcontentlength,
        resourcetype and getetag are reported. The request body is ignored.
        """
        depth = self._get_depth(environ)
        key = self._resolve(environ)

        descriptors = None
        if not key.is_dir:
            info = self.store.head(key.key)
            if info is not None:
                descriptors = [ResourceDescriptor.from_object_info(info)]
            else:
                # Maybe a collection that was requested without trailing '/'
                dir_key = self.resolver.as_directory(key)
                found = self.store.list(prefix=dir_key.key, delimiter="/")
                if found.is_empty():
                    self._fail(ErrorKind.NOT_FOUND, environ["PATH_INFO"])
                _logger.debug(f"PROPFIND {key.key!r}: found collection {dir_key.key!r}")
                key = dir_key

        if descriptors is None:
            descriptors = self._list_collection(key, depth)

        multistatus_el = make_multistatus(
            descriptors, util.make_origin_url(environ), self.resolver
        )
        return util.send_multi_status_response(environ, start_response, multistatus_el)

    def _list_collection(self, dir_key, depth):
        """Return descriptors for a collection and (Depth 1) its members."""
        descriptors = [ResourceDescriptor.for_directory(dir_key)]
        if depth == "0":
            return descriptors

        if not self.dav_config.allow_dir_listing:
            self._fail(ErrorKind.FORBIDDEN, "Directory listing is disabled.")

        listing = self.store.list(prefix=dir_key.key, delimiter="/")
        for info in listing.objects:
            # The explicit marker of the listed collection itself
            if info.key == dir_key.key:
                continue
            descriptors.append(ResourceDescriptor.from_object_info(info))
        for prefix in listing.prefixes:
            descriptors.append(ResourceDescriptor.for_directory(prefix))
        _logger.debug(f"PROPFIND {dir_key.key!r}: {len(descriptors)} entries")
        return descriptors

    # --- GET / HEAD ---------------------------------------------------------

    def do_GET(self, environ, start_response):
        return self._send_resource(environ, start_response, is_head_method=False)

    def do_HEAD(self, environ, start_response):
        return self._send_resource(environ, start_response, is_head_method=True)

    def _send_resource(self, environ, start_response, is_head_method):
        key = self._resolve(environ)
        if key.is_dir:
            self._fail(ErrorKind.BAD_REQUEST, "Cannot GET a directory")

        if is_head_method:
            info = self.store.head(key.key)
            obj = None
        else:
            obj = self.store.get(key.key)
            info = obj.info if obj is not None else None
        if info is None:
            self._fail(ErrorKind.NOT_FOUND, environ["PATH_INFO"])

        meta = info.http_metadata
        response_headers = [
            (
                "Content-Type",
                meta.get("Content-Type") or util.guess_mime_type(key.key),
            ),
            ("Content-Length", str(info.size)),
            ("Last-Modified", util.get_rfc1123_time(info.last_modified)),
            ("Date", util.get_rfc1123_time()),
        ]
        etag = checked_etag(info.etag, allow_none=True)
        if etag is not None:
            response_headers.append(("ETag", f'"{etag}"'))
        for name in CONTENT_METADATA_HEADERS:
            if name != "Content-Type" and meta.get(name):
                response_headers.append((name, meta[name]))

        start_response("200 OK", response_headers)

        # Return empty body for HEAD requests
        if is_head_method:
            yield b""
            return

        yield from obj.iter_chunks(self.block_size)
        return

    # --- PUT ----------------------------------------------------------------

    def _stream_data(self, environ, block_size):
        """Get the data."""
        if environ.get("CONTENT_LENGTH", "") != "":
            remaining = util.get_content_length(environ)
        else:
            remaining = -1  # chunked: read until EOF
        while remaining != 0:
            if 0 < remaining < block_size:
                buf = environ["wsgi.input"].read(remaining)
            else:
                buf = environ["wsgi.input"].read(block_size)
            if buf == b"":
                break
            environ["objdav.some_input_read"] = 1
            if remaining > 0:
                remaining -= len(buf)
            yield buf
        environ["objdav.all_input_read"] = 1

    def _get_content_metadata(self, environ, key):
        """Return the content headers of the request, to be stored with the object."""
        metadata = {}
        for name, environ_name in _ENVIRON_BY_HEADER.items():
            value = environ.get(environ_name)
            if value:
                metadata[name] = value
        if not metadata.get("Content-Type"):
            metadata["Content-Type"] = util.guess_mime_type(key.key)
        return metadata

    def do_PUT(self, environ, start_response):
        """
        @see: http://www.webdav.org/specs/rfc4918.html#METHOD_PUT

        The body is stored verbatim (replacing an existing object) and always
        answered with '201 Created'. Directory-shaped paths ('/a/') are
        rejected, their keys are reserved for collection markers.
        """
        key = self._resolve(environ)
        if key.is_dir:
            self._fail(ErrorKind.BAD_REQUEST, "Cannot PUT to a collection")
        if not util.has_request_body(environ):
            self._fail(ErrorKind.BAD_REQUEST, "Request body is required for PUT")

        data = b"".join(self._stream_data(environ, self.block_size))
        metadata = self._get_content_metadata(environ, key)
        info = self.store.put(key.key, data, metadata)
        _logger.debug(f"PUT {key.key!r}: {info.size} bytes")

        headers = None
        etag = checked_etag(info.etag, allow_none=True)
        if etag is not None:
            headers = [("ETag", f'"{etag}"')]
        return util.send_status_response(
            environ, start_response, HTTP_CREATED, add_headers=headers
        )

    # --- DELETE -------------------------------------------------------------

    def do_DELETE(self, environ, start_response):
        """
        @see: http://www.webdav.org/specs/rfc4918.html#METHOD_DELETE

        Deleting a collection removes every key below it (including the
        explicit marker). Listing and deleting are not atomic: objects that
        are added meanwhile survive.

        Only the shape of the path decides: 'DELETE /a' removes the object
        'a' and never the members of 'a/', even if there is no object 'a'.
        (PROPFIND retries such paths as collection, a delete does not.)
        """
        key = self._resolve(environ)
        if key.is_dir:
            listing = self.store.list(prefix=key.key)
            keys = [info.key for info in listing.objects]
            _logger.debug(f"DELETE {key.key!r}: {len(keys)} keys")
            if keys:
                self.store.delete(keys)
        else:
            self.store.delete(key.key)
        return util.send_status_response(environ, start_response, HTTP_NO_CONTENT)

    # --- MKCOL --------------------------------------------------------------

    def do_MKCOL(self, environ, start_response):
        """
        @see: http://www.webdav.org/specs/rfc4918.html#METHOD_MKCOL

        Creates a zero-length marker object '<key>/'. Repeating the request
        simply rewrites the marker.
        """
        key = self._resolve(environ, as_dir=True)
        if key.key == "":
            # The bucket root always exists and cannot have a marker
            return util.send_status_response(environ, start_response, HTTP_CREATED)
        self.store.put(key.key, b"")
        return util.send_status_response(environ, start_response, HTTP_CREATED)

    # --- COPY / MOVE --------------------------------------------------------

    def do_COPY(self, environ, start_response):
        return self._copy_or_move(environ, start_response, False)

    def do_MOVE(self, environ, start_response):
        return self._copy_or_move(environ, start_response, True)

    def _copy_object(self, src_key, dest_key):
        """Copy one object by reading the source and writing the destination.

        Returns the `ObjectInfo` of the destination.
        If the source does not exist, NOT_FOUND is raised. If the destination
        write fails, BACKEND_FAILURE is raised and the source is left untouched.
        """
        obj = self.store.get(src_key.key)
        if obj is None:
            self._fail(ErrorKind.NOT_FOUND, "Source Not Found")
        data = obj.read_all()
        try:
            return self.store.put(dest_key.key, data, obj.info.http_metadata)
        except ObjectStoreError as e:
            _logger.error(f"Copy {src_key.key!r} -> {dest_key.key!r} failed: {e}")
            self._fail(
                ErrorKind.BACKEND_FAILURE,
                f"Destination write failed: {dest_key.key!r}",
                src_exception=e,
            )

    def _copy_or_move(self, environ, start_response, is_move):
        """
        @see: http://www.webdav.org/specs/rfc4918.html#METHOD_COPY
        @see: http://www.webdav.org/specs/rfc4918.html#METHOD_MOVE

        Only single objects are supported. The 'Overwrite' header is ignored
        (the destination is always replaced).
        """
        src_key = self._resolve(environ)
        dest = environ.get("HTTP_DESTINATION")
        if not dest:
            self._fail(ErrorKind.BAD_REQUEST, "Missing required Destination header.")
        dest_key = self.resolver.resolve_destination(dest)

        if src_key.is_dir or dest_key.is_dir:
            self._fail(ErrorKind.BAD_REQUEST, "Collection COPY/MOVE is not supported.")

        self._copy_object(src_key, dest_key)

        if is_move:
            if dest_key != src_key:
                self.store.delete(src_key.key)
            return util.send_status_response(environ, start_response, HTTP_NO_CONTENT)
        return util.send_status_response(environ, start_response, HTTP_CREATED)

    # --- OPTIONS ------------------------------------------------------------

    def do_OPTIONS(self, environ, start_response):
        """
        @see http://www.webdav.org/specs/rfc4918.html#HEADER_DAV

        Answered without touching the object store.
        """
        headers = [
            ("Content-Type", "text/html; charset=utf-8"),
            ("Content-Length", "0"),
            ("DAV", DAV_COMPLIANCE_LEVEL),
            ("Allow", ", ".join(SUPPORTED_METHODS)),
            ("Date", util.get_rfc1123_time()),
        ]
        if self.dav_config.add_header_MS_Author_Via:
            headers.append(("MS-Author-Via", "DAV"))

        start_response("200 OK", headers)
        return [b""]
