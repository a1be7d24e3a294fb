# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
WSGI middleware for HTTP basic authentication.

Every request (including OPTIONS) must carry valid Basic credentials:

- No ``Authorization`` header, another scheme, or a value that does not
  decode to ``user_name:password``: '401 Unauthorized' with a
  ``WWW-Authenticate: Basic realm="..."`` challenge.
- Unknown user or wrong password: '403 Forbidden'.

The HTTPAuthenticator will put the following authenticated information in the
environ dictionary::

   environ["objdav.auth.realm"] = realm name
   environ["objdav.auth.user_name"] = user_name

**Domain Controllers**

The credential check is delegated to a domain controller. By default this is
:class:`~objdav.dc.simple_dc.SimpleDomainController`, which uses the static
``simple_dc.user_mapping`` table. Custom controllers may be configured as
``http_authenticator.domain_controller`` (class or dotted class name).
"""

import binascii
import inspect

from objdav import util
from objdav.dav_error import ErrorKind
from objdav.dc.simple_dc import SimpleDomainController
from objdav.mw.base_mw import BaseMiddleware

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)


def make_domain_controller(objdav_app, config):
    dc = config.get("http_authenticator", {}).get("domain_controller")
    org_dc = dc
    if dc is True or not dc:
        dc = SimpleDomainController
    elif isinstance(dc, str):
        dc = util.import_class(dc)

    if inspect.isclass(dc):
        dc = dc(objdav_app, config)
    else:
        raise RuntimeError(f"Could not resolve domain controller class (got {org_dc})")
    return dc


def parse_basic_auth_header(auth_header):
    """Return (user_name, password) from a Basic Authorization header.

    Returns None if the header is missing, uses another scheme, or is
    malformed.
    """
    if not auth_header:
        return None
    parts = auth_header.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "basic":
        return None
    try:
        auth_value = util.to_str(
            binascii.a2b_base64(util.to_bytes(parts[1].strip(), "ascii"))
        )
    except (binascii.Error, UnicodeError):
        return None
    if ":" not in auth_value:
        return None
    user_name, password = auth_value.split(":", 1)
    return user_name, password


class HTTPAuthenticator(BaseMiddleware):
    """WSGI Middleware for basic authentication."""

    def __init__(self, objdav_app, next_app, config):
        super().__init__(objdav_app, next_app, config)
        self.domain_controller = make_domain_controller(objdav_app, config)

    def get_domain_controller(self):
        return self.domain_controller

    def __call__(self, environ, start_response):
        realm = self.domain_controller.get_domain_realm(environ["PATH_INFO"], environ)

        environ["objdav.auth.realm"] = realm
        environ["objdav.auth.user_name"] = ""

        credentials = parse_basic_auth_header(environ.get("HTTP_AUTHORIZATION"))
        if credentials is None:
            return self.send_basic_auth_response(environ, start_response)
        return self.handle_basic_auth_request(environ, start_response, credentials)

    def send_basic_auth_response(self, environ, start_response):
        realm = self.domain_controller.get_domain_realm(environ["PATH_INFO"], environ)
        _logger.debug(f"401 Not Authorized for realm {realm!r} (basic)")
        wwwauthheaders = f'Basic realm="{realm}"'
        util.fail(
            ErrorKind.AUTH_REQUIRED,
            "Authorization required",
            add_headers=[("WWW-Authenticate", wwwauthheaders)],
        )

    def handle_basic_auth_request(self, environ, start_response, credentials):
        realm = environ["objdav.auth.realm"]
        user_name, password = credentials

        if self.domain_controller.basic_auth_user(realm, user_name, password, environ):
            environ["objdav.auth.user_name"] = user_name
            return self.next_app(environ, start_response)

        _logger.warning(
            f"Authentication (basic) failed for user {user_name!r}, realm {realm!r}."
        )
        util.fail(ErrorKind.AUTH_REJECTED, "Invalid credentials")
