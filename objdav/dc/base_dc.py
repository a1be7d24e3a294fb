# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Abstract base class of a domain controller (used by HTTPAuthenticator).

Domain controllers are called by `HTTPAuthenticator` to check if a
user_name/password pair (taken from a Basic authorization header) is allowed
to perform a request.

Note that there is no checking for `isinstance(BaseDomainController)` in the
code, so ObjDAV also accepts duck-typed domain controllers.
"""

from abc import ABC, abstractmethod

from objdav import util

__docformat__ = "reStructuredText"

logger = util.get_module_logger(__name__)


class BaseDomainController(ABC):
    def __init__(self, objdav_app, config):
        self.objdav_app = objdav_app
        self.config = config

    def __str__(self):
        return f"{self.__class__.__name__}()"

    @abstractmethod
    def get_domain_realm(self, path_info, environ):
        """Return the realm name that is sent with the Basic challenge.

        Args:
            path_info (str):
            environ (dict | None):
        Returns:
            str
        """
        raise NotImplementedError

    @abstractmethod
    def basic_auth_user(self, realm, user_name, password, environ):
        """Check request access permissions for realm/user_name/password.

        Called by http_authenticator for basic authentication requests.

        Args:
            realm (str):
            user_name (str):
            password (str):
            environ (dict):
        Returns:
            False if user is not known or not authorized
            True if user is authorized
        """
        raise NotImplementedError
