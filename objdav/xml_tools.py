# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Original PyFileServer (c) 2005 Ho Chun Wei.
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Small wrapper for the etree implementation used to build multistatus documents.

lxml is used if installed (``pip install objdav[lxml]``), otherwise the
standard ``xml.etree`` package. Parsing always uses defusedxml.
"""

from defusedxml.ElementTree import fromstring as _safe_fromstring

__docformat__ = "reStructuredText"

#: Namespace prefix used for 'DAV:' in generated documents
DAV_NS_PREFIX = "D"

use_lxml = False
try:
    from lxml import etree

    use_lxml = True
except ImportError:
    from xml.etree import ElementTree as etree

    etree.register_namespace(DAV_NS_PREFIX, "DAV:")


def string_to_xml(text):
    """Parse an XML document (str or bytes) into an element, rejecting entity tricks."""
    return _safe_fromstring(text)


def xml_to_bytes(element):
    """Serialize `element` as UTF-8 bytes with an XML declaration."""
    if use_lxml:
        return etree.tostring(element, encoding="UTF-8", xml_declaration=True)
    xml = etree.tostring(element, encoding="UTF-8")
    if not xml.startswith(b"<?xml"):
        xml = b'<?xml version="1.0" encoding="UTF-8"?>\n' + xml
    return xml


def make_multistatus_el():
    """Return an empty <D:multistatus> element."""
    if use_lxml:
        return etree.Element("{DAV:}multistatus", nsmap={DAV_NS_PREFIX: "DAV:"})
    return etree.Element("{DAV:}multistatus")
