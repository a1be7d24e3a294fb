# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Map request paths to backend keys.

A backend key is the root prefix followed by the URL path without its leading
'/'. Keys that end with '/' denote directories (collections). The resolver
returns either an :class:`ObjectKey` or a :class:`DirectoryKey`, so handlers
never have to re-check the trailing slash.

Note that '.' and '..' segments are passed through verbatim.
"""

from urllib.parse import quote, unquote, urlparse

from objdav import util

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

#: Characters that are not percent-encoded in hrefs
HREF_SAFE_CHARS = "/!*'(),$-_|.~@:"


class StoreKey:
    """Base class for resolved backend keys."""

    is_dir = False

    def __init__(self, key: str):
        self.key = key

    def __repr__(self):
        return f"{self.__class__.__name__}({self.key!r})"

    def __str__(self):
        return self.key

    def __eq__(self, other):
        return type(self) is type(other) and self.key == other.key

    def __hash__(self):
        return hash((type(self), self.key))


class ObjectKey(StoreKey):
    """Key of a single object (never ends with '/')."""


class DirectoryKey(StoreKey):
    """Key of a collection: '' (bucket root) or ending with '/'."""

    is_dir = True

    def __init__(self, key: str):
        assert key == "" or key.endswith("/"), key
        super().__init__(key)


class PathResolver:
    """Translate URL paths to store keys and back.

    Args:
        root_prefix (str): '' or a key prefix ending with '/'
    """

    def __init__(self, root_prefix: str = ""):
        assert not root_prefix or root_prefix.endswith("/"), root_prefix
        self.root_prefix = root_prefix

    def __repr__(self):
        return f"{self.__class__.__name__}({self.root_prefix!r})"

    def resolve(self, url_path: str, *, as_dir=False) -> StoreKey:
        """Return the store key for a (decoded) URL path.

        Args:
            url_path: request path, e.g. '/docs/readme.txt'
            as_dir: True: always return a DirectoryKey
        """
        # Only the separator that starts every URL path is dropped
        key = self.root_prefix + (url_path[1:] if url_path.startswith("/") else url_path)
        if as_dir or key == "" or key.endswith("/"):
            return self.as_directory(key)
        return ObjectKey(key)

    def as_directory(self, key) -> DirectoryKey:
        """Return the directory-shaped variant of `key` (appending '/')."""
        if isinstance(key, StoreKey):
            key = key.key
        if key and not key.endswith("/"):
            key += "/"
        return DirectoryKey(key)

    def resolve_destination(self, destination: str) -> StoreKey:
        """Return the store key for a COPY/MOVE `Destination` header value.

        The header holds an absolute URL (or an absolute path). Only the path
        is used.
        """
        path = unquote(urlparse(destination).path)
        return self.resolve(path)

    def to_href_path(self, key) -> str:
        """Return the client-facing path ('/...') of a key, without root prefix."""
        if isinstance(key, StoreKey):
            key = key.key
        if self.root_prefix and key.startswith(self.root_prefix):
            key = key[len(self.root_prefix) :]
        return "/" + key

    def to_href(self, origin: str, key) -> str:
        """Return the absolute, quoted href of a key for multistatus responses."""
        return origin + quote(self.to_href_path(key), safe=HREF_SAFE_CHARS)
