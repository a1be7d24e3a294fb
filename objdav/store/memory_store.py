# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Implements an in-memory object store.

This is obviously not persistent, but useful for tests and for demos.
For a persistent implementation, see
:class:`~objdav.store.redis_store.ObjectStoreRedis`.
"""

import threading
import time

from objdav import util
from objdav.store.base_store import ListResult, ObjectInfo, ObjectStore, StoredObject

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)


# ========================================================================
# ObjectStoreDict
# ========================================================================
class ObjectStoreDict(ObjectStore):
    """
    An in-memory object store implementation using a dictionary.

    R/W access is guarded by a threading.RLock object.

    The dictionary is built like::

        {
          'docs/': (ObjectInfo('docs/', size=0), b''),
          'docs/readme.txt': (ObjectInfo('docs/readme.txt', size=11), b'hello world'),
        }
    """

    def __init__(self):
        super().__init__()
        self._dict = {}
        self._lock = threading.RLock()

    def clear(self):
        """Delete all entries."""
        with self._lock:
            self._dict.clear()

    def head(self, key):
        with self._lock:
            entry = self._dict.get(key)
        if entry is None:
            return None
        return entry[0]

    def get(self, key):
        with self._lock:
            entry = self._dict.get(key)
        if entry is None:
            return None
        info, data = entry
        return StoredObject(info, self._make_stream(data))

    def put(self, key, data, metadata=None):
        data = self._read_data(data)
        info = ObjectInfo(
            key,
            size=len(data),
            last_modified=time.time(),
            etag=util.calc_hexdigest(data),
            http_metadata=self._filter_metadata(metadata),
        )
        with self._lock:
            self._dict[key] = (info, data)
        _logger.debug(f"put({key!r}): {info.size} bytes")
        return info

    def delete(self, keys):
        if isinstance(keys, str):
            keys = [keys]
        with self._lock:
            for key in keys:
                self._dict.pop(key, None)
        _logger.debug(f"delete({keys!r})")

    def list(self, prefix="", delimiter=None):
        with self._lock:
            keys = sorted(k for k in self._dict if k.startswith(prefix))
            object_keys, prefixes = self._split_listing(keys, prefix, delimiter)
            objects = [self._dict[k][0] for k in object_keys]
        return ListResult(objects, prefixes)
