# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Resource descriptors, i.e. the properties that PROPFIND reports for a key.
"""

import time

__docformat__ = "reStructuredText"


class ResourceDescriptor:
    """Properties of one resource in a PROPFIND response.

    A descriptor is a collection if its key ends with '/' or if it was
    synthesized for a collection. Collections always report size 0.
    """

    def __init__(self, key, *, is_dir=False, size=0, last_modified=None, etag=None):
        self.key = key
        self.is_dir = bool(is_dir) or key == "" or key.endswith("/")
        self.size = 0 if self.is_dir else int(size)
        self.last_modified = time.time() if last_modified is None else last_modified
        self.etag = etag

    def __repr__(self):
        kind = "dir" if self.is_dir else f"{self.size} bytes"
        return f"{self.__class__.__name__}({self.key!r}, {kind})"

    @classmethod
    def from_object_info(cls, info):
        """Create a descriptor for an existing object (`ObjectInfo`)."""
        return cls(
            info.key,
            size=info.size,
            last_modified=info.last_modified,
            etag=info.etag,
        )

    @classmethod
    def for_directory(cls, key):
        """Create a synthesized collection descriptor (modified 'now')."""
        if isinstance(key, str):
            return cls(key, is_dir=True)
        return cls(key.key, is_dir=True)
