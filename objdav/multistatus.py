# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Render PROPFIND results as a WebDAV ``<D:multistatus>`` document.

Every descriptor produces one ``<D:response>``::

    <D:response>
      <D:href>http://server/docs/readme.txt</D:href>
      <D:propstat>
        <D:prop>
          <D:getlastmodified>Sat, 18 Oct 2026 10:00:00 GMT</D:getlastmodified>
          <D:getcontentlength>11</D:getcontentlength>
          <D:resourcetype/>
          <D:getetag>"5eb63bbbe01eeed093cb22bb8f5acdc3"</D:getetag>
        </D:prop>
        <D:status>HTTP/1.1 200 OK</D:status>
      </D:propstat>
    </D:response>
"""

from objdav import util
from objdav.xml_tools import etree, make_multistatus_el, xml_to_bytes

__docformat__ = "reStructuredText"

PROPSTAT_OK = "HTTP/1.1 200 OK"


def add_descriptor_response(multistatus_elem, href, descriptor):
    """Append a <response> element for one ResourceDescriptor."""
    response_el = etree.SubElement(multistatus_elem, "{DAV:}response")
    etree.SubElement(response_el, "{DAV:}href").text = href

    propstat_el = etree.SubElement(response_el, "{DAV:}propstat")
    prop_el = etree.SubElement(propstat_el, "{DAV:}prop")

    etree.SubElement(prop_el, "{DAV:}getlastmodified").text = util.get_rfc1123_time(
        descriptor.last_modified
    )
    etree.SubElement(prop_el, "{DAV:}getcontentlength").text = str(
        0 if descriptor.is_dir else descriptor.size
    )
    resourcetype_el = etree.SubElement(prop_el, "{DAV:}resourcetype")
    if descriptor.is_dir:
        etree.SubElement(resourcetype_el, "{DAV:}collection")
    if descriptor.etag:
        etree.SubElement(prop_el, "{DAV:}getetag").text = f'"{descriptor.etag}"'

    etree.SubElement(propstat_el, "{DAV:}status").text = PROPSTAT_OK
    return response_el


def make_multistatus(descriptors, origin, resolver):
    """Return a <multistatus> element for a list of ResourceDescriptors.

    Args:
        descriptors (list[ResourceDescriptor]): rendered in the given order
        origin (str): 'scheme://host[:port]' of the request
        resolver (PathResolver): used to strip the root prefix from hrefs
    """
    multistatus_el = make_multistatus_el()
    for descriptor in descriptors:
        href = resolver.to_href(origin, descriptor.key)
        add_descriptor_response(multistatus_el, href, descriptor)
    return multistatus_el


def render_multistatus(descriptors, origin, resolver):
    """Return the serialized multistatus document (UTF-8 bytes)."""
    return xml_to_bytes(make_multistatus(descriptors, origin, resolver))
