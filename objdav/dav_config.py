# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Immutable core settings.

The nested configuration dict is only used while the application is set up.
The values the request handlers depend on are frozen into a
:class:`DAVConfig` once and passed explicitly to the components that need
them.
"""

from types import MappingProxyType
from typing import Mapping, NamedTuple

from objdav import util

__docformat__ = "reStructuredText"


class DAVConfig(NamedTuple):
    #: username -> password (read-only)
    users: Mapping[str, str]
    #: False: PROPFIND with 'Depth: 1' on collections is forbidden
    allow_dir_listing: bool = True
    #: Backend key prefix of the WebDAV root ('' or ending with '/')
    root_prefix: str = ""
    #: Realm that is sent with the Basic challenge
    realm: str = "ObjDAV"
    #: Chunk size for streamed GET responses
    block_size: int = 8192
    add_header_MS_Author_Via: bool = True

    @classmethod
    def from_config(cls, config: dict) -> "DAVConfig":
        """Build from a (checked) nested configuration dict."""
        users = get_user_mapping(config)
        return cls(
            users=MappingProxyType(dict(users)),
            allow_dir_listing=bool(
                util.get_dict_value(config, "dir_listing.enable", True)
            ),
            root_prefix=config.get("root_prefix") or "",
            realm=util.get_dict_value(config, "http_authenticator.realm", "ObjDAV"),
            block_size=int(config.get("block_size", 8192)),
            add_header_MS_Author_Via=bool(config.get("add_header_MS_Author_Via", True)),
        )


def get_user_mapping(config: dict) -> dict:
    """Return the credential table ``{username: password}`` from `config`."""
    users = util.get_dict_value(config, "simple_dc.user_mapping", as_dict=True)
    return {str(k): str(v) for k, v in users.items()}
