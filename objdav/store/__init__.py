"""
Object store adapters.

:class:`~objdav.store.base_store.ObjectStore` defines the narrow interface
ObjDAV requires of a backend.
"""
