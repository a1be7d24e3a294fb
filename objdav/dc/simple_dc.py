# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Implementation of a domain controller that uses a static user_name/password
table from the configuration.

user_mapping is defined a follows::

    simple_dc: {
        user_mapping = {
            "John Smith": "YouNeverGuessMe",
            "Dan Brown": "DontGuessMeEither",
        },
    }

Passwords are compared as plain strings. There is no anonymous access: an
empty table rejects every request.

The table is read once from the frozen
:class:`~objdav.dav_config.DAVConfig` of the application and never changes.
"""

from objdav import util
from objdav.dc.base_dc import BaseDomainController

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)


class SimpleDomainController(BaseDomainController):
    def __init__(self, objdav_app, config):
        super().__init__(objdav_app, config)
        dav_config = objdav_app.dav_config
        self.user_map = dav_config.users
        self.realm = dav_config.realm
        if not self.user_map:
            _logger.warning(
                "simple_dc.user_mapping is empty: all requests will be rejected."
            )
        return

    def __str__(self):
        return f"{self.__class__.__name__}({len(self.user_map)} users)"

    def get_domain_realm(self, path_info, environ):
        """Return the configured realm name (the same for all paths)."""
        return self.realm

    def basic_auth_user(self, realm, user_name, password, environ):
        """Returns True if this user_name/password pair is valid, False otherwise."""
        expected = self.user_map.get(user_name)
        return expected is not None and password == expected
