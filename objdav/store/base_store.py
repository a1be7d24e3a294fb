# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Abstract base class for object store adapters.

An object store is a flat mapping from string keys to byte blobs. It has no
directories, no rename and no locking. ObjDAV only needs five operations from
it::

    head(key)                   -> ObjectInfo | None
    get(key)                    -> StoredObject | None
    put(key, data, metadata)    -> ObjectInfo
    delete(keys)                -> None
    list(prefix, delimiter)     -> ListResult

Adapters report backend failures by raising :class:`ObjectStoreError`.

See also:
    :class:`~objdav.store.memory_store.ObjectStoreDict`
    :class:`~objdav.store.redis_store.ObjectStoreRedis`
"""

from abc import ABC, abstractmethod
from io import BytesIO

from objdav import util

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

#: HTTP content headers that are stored with an object and sent back on GET
CONTENT_METADATA_HEADERS = (
    "Content-Type",
    "Content-Language",
    "Content-Disposition",
    "Content-Encoding",
    "Cache-Control",
    "Expires",
)


class ObjectStoreError(Exception):
    """Raised by store adapters if the backend reports a failure."""


# ========================================================================
# ObjectInfo
# ========================================================================
class ObjectInfo:
    """Meta data of a stored object (no payload).

    Attributes:
        key (str): full backend key
        size (int): payload length in bytes
        last_modified (float): upload time in seconds since epoch
        etag (str): unquoted entity tag or None
        http_metadata (dict): stored content headers, see
            ``CONTENT_METADATA_HEADERS``
    """

    def __init__(self, key, size, last_modified, etag=None, http_metadata=None):
        self.key = key
        self.size = size
        self.last_modified = last_modified
        self.etag = etag
        self.http_metadata = http_metadata or {}

    def __repr__(self):
        return f"{self.__class__.__name__}({self.key!r}, size={self.size})"

    def __eq__(self, other):
        if not isinstance(other, ObjectInfo):
            return NotImplemented
        return (
            self.key == other.key
            and self.size == other.size
            and self.last_modified == other.last_modified
            and self.etag == other.etag
            and self.http_metadata == other.http_metadata
        )


# ========================================================================
# StoredObject
# ========================================================================
class StoredObject:
    """An object returned by `ObjectStore.get()`: meta data and a body stream.

    The stream is a file-like object that supports ``read(size)``. Callers
    should ``close()`` the object when done.
    """

    def __init__(self, info, stream):
        self.info = info
        self.stream = stream

    def __repr__(self):
        return f"{self.__class__.__name__}({self.info!r})"

    def iter_chunks(self, block_size):
        """Yield the payload in chunks of at most `block_size` bytes."""
        try:
            while True:
                data = self.stream.read(block_size)
                if not data:
                    break
                yield data
        finally:
            self.close()

    def read_all(self):
        """Return the complete payload as bytes (and close the stream)."""
        try:
            return self.stream.read()
        finally:
            self.close()

    def close(self):
        if hasattr(self.stream, "close"):
            self.stream.close()


# ========================================================================
# ListResult
# ========================================================================
class ListResult:
    """Result of `ObjectStore.list()`.

    Attributes:
        objects (list[ObjectInfo]): objects matching the prefix, in key order
        prefixes (list[str]): common prefixes that were rolled up at the
            delimiter (each including the trailing delimiter), in key order.
            Always empty if no delimiter was passed.
    """

    def __init__(self, objects=None, prefixes=None):
        self.objects = objects or []
        self.prefixes = prefixes or []

    def __repr__(self):
        return "{}(objects={}, prefixes={})".format(
            self.__class__.__name__, len(self.objects), len(self.prefixes)
        )

    def is_empty(self):
        return not self.objects and not self.prefixes


# ========================================================================
# ObjectStore
# ========================================================================
class ObjectStore(ABC):
    """Abstract base class for object store adapters."""

    def __repr__(self):
        return self.__class__.__name__

    def open(self):
        """Called before first use.

        May be implemented to initialize a storage.
        """

    def close(self):
        """Called on shutdown (e.g. to release connections)."""

    def clear(self):
        """Delete all entries (used by tests)."""
        raise NotImplementedError

    @abstractmethod
    def head(self, key):
        """Return :class:`ObjectInfo` for `key` or None if it does not exist."""

    @abstractmethod
    def get(self, key):
        """Return :class:`StoredObject` for `key` or None if it does not exist."""

    @abstractmethod
    def put(self, key, data, metadata=None):
        """Store `data` under `key`, replacing an existing object.

        Args:
            key (str):
            data (bytes | file-like): payload, file-like objects are read
                until EOF
            metadata (dict): content headers, see ``CONTENT_METADATA_HEADERS``
        Returns:
            :class:`ObjectInfo` of the new object
        """

    @abstractmethod
    def delete(self, keys):
        """Delete one key (str) or a batch of keys (list).

        Missing keys are silently ignored.
        """

    @abstractmethod
    def list(self, prefix="", delimiter=None):
        """Return :class:`ListResult` for all keys starting with `prefix`.

        If `delimiter` is given, keys that contain the delimiter after the
        prefix are rolled up into a common prefix (up to and including the
        first delimiter) instead of being reported as objects.
        """

    # --- Helpers for implementations ----------------------------------------

    @staticmethod
    def _read_data(data):
        """Return `data` as bytes (read file-like objects until EOF)."""
        if data is None:
            return b""
        if isinstance(data, (bytes, bytearray)):
            return bytes(data)
        if isinstance(data, str):
            return util.to_bytes(data)
        return data.read()

    @staticmethod
    def _filter_metadata(metadata):
        """Return a dict with the supported content headers only."""
        res = {}
        if not metadata:
            return res
        for name in CONTENT_METADATA_HEADERS:
            value = metadata.get(name)
            if value:
                res[name] = value
        return res

    @staticmethod
    def _split_listing(keys, prefix, delimiter):
        """Partition sorted `keys` into (object keys, common prefixes)."""
        object_keys = []
        prefixes = []
        for key in keys:
            if not key.startswith(prefix):
                continue
            if delimiter:
                pos = key.find(delimiter, len(prefix))
                if pos >= 0:
                    common = key[: pos + len(delimiter)]
                    if not prefixes or prefixes[-1] != common:
                        prefixes.append(common)
                    continue
            object_keys.append(key)
        return object_keys, prefixes

    @staticmethod
    def _make_stream(data):
        return BytesIO(data)
