# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Implements a persistent object store using redis.

Every object is stored as a hash::

    objdav-obj:<key> = {data, size, mtime, etag, meta}

A sorted set ``objdav-index`` holds all keys with score 0, so prefix listings
can be served in key order with ZRANGEBYLEX.

Requires redis-py (``pip install redis``).
"""

import json
import time

import redis

from objdav import util
from objdav.store.base_store import (
    ListResult,
    ObjectInfo,
    ObjectStore,
    ObjectStoreError,
    StoredObject,
)

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

_HEAD_FIELDS = ("size", "mtime", "etag", "meta")


class ObjectStoreRedis(ObjectStore):
    """
    An object store implementation using redis.
    """

    def __init__(self, host="127.0.0.1", port=6379, db=0, namespace="objdav"):
        super().__init__()
        self._redis_host = host
        self._redis_port = port
        self._redis_db = db
        self._redis_prefix = namespace + "-{}"
        self._redis_obj_prefix = self._redis_prefix.format("obj:{}")
        self._redis_index = self._redis_prefix.format("index")
        self._redis = None

    def __repr__(self):
        return "{}({}:{}/{})".format(
            self.__class__.__name__, self._redis_host, self._redis_port, self._redis_db
        )

    def open(self):
        """Called before first use."""
        assert self._redis is None
        self._redis = redis.Redis(
            host=self._redis_host, port=self._redis_port, db=self._redis_db
        )
        super().open()

    def close(self):
        """Called on shutdown."""
        if self._redis is not None:
            self._redis.close()
        self._redis = None
        super().close()

    def clear(self):
        """Delete all entries."""
        if self._redis is not None:
            keys = self._redis.keys(self._redis_prefix.format("*"))
            if keys:
                self._redis.delete(*keys)

    def _obj_key(self, key):
        return self._redis_obj_prefix.format(key)

    def _make_info(self, key, size, mtime, etag, meta):
        return ObjectInfo(
            key,
            size=int(size),
            last_modified=float(mtime),
            etag=util.to_str(etag) if etag else None,
            http_metadata=json.loads(meta) if meta else {},
        )

    def head(self, key):
        try:
            values = self._redis.hmget(self._obj_key(key), _HEAD_FIELDS)
        except redis.exceptions.RedisError as e:
            raise ObjectStoreError(f"head({key!r}) failed: {e}") from e
        if values[0] is None:
            return None
        return self._make_info(key, *values)

    def get(self, key):
        try:
            values = self._redis.hmget(self._obj_key(key), _HEAD_FIELDS + ("data",))
        except redis.exceptions.RedisError as e:
            raise ObjectStoreError(f"get({key!r}) failed: {e}") from e
        if values[0] is None:
            return None
        info = self._make_info(key, *values[:4])
        return StoredObject(info, self._make_stream(values[4] or b""))

    def put(self, key, data, metadata=None):
        data = self._read_data(data)
        info = ObjectInfo(
            key,
            size=len(data),
            last_modified=time.time(),
            etag=util.calc_hexdigest(data),
            http_metadata=self._filter_metadata(metadata),
        )
        mapping = {
            "data": data,
            "size": info.size,
            "mtime": repr(info.last_modified),
            "etag": info.etag,
            "meta": json.dumps(info.http_metadata),
        }
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.hset(self._obj_key(key), mapping=mapping)
            pipe.zadd(self._redis_index, {key: 0})
            pipe.execute()
        except redis.exceptions.RedisError as e:
            raise ObjectStoreError(f"put({key!r}) failed: {e}") from e
        _logger.debug(f"put({key!r}): {info.size} bytes")
        return info

    def delete(self, keys):
        if isinstance(keys, str):
            keys = [keys]
        if not keys:
            return
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.delete(*[self._obj_key(k) for k in keys])
            pipe.zrem(self._redis_index, *keys)
            pipe.execute()
        except redis.exceptions.RedisError as e:
            raise ObjectStoreError(f"delete({keys!r}) failed: {e}") from e
        _logger.debug(f"delete({keys!r})")

    def list(self, prefix="", delimiter=None):
        if prefix:
            b_prefix = util.to_bytes(prefix)
            lex_min = b"[" + b_prefix
            lex_max = b"(" + b_prefix + b"\xff"
        else:
            lex_min, lex_max = b"-", b"+"
        try:
            keys = [
                util.to_str(k)
                for k in self._redis.zrangebylex(self._redis_index, lex_min, lex_max)
            ]
            object_keys, prefixes = self._split_listing(keys, prefix, delimiter)
            if object_keys:
                pipe = self._redis.pipeline(transaction=False)
                for key in object_keys:
                    pipe.hmget(self._obj_key(key), _HEAD_FIELDS)
                rows = pipe.execute()
            else:
                rows = []
        except redis.exceptions.RedisError as e:
            raise ObjectStoreError(f"list({prefix!r}) failed: {e}") from e

        objects = [
            self._make_info(key, *values)
            for key, values in zip(object_keys, rows)
            # Skip entries that were deleted since the index was read
            if values[0] is not None
        ]
        return ListResult(objects, prefixes)
