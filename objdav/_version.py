"""
Current ObjDAV version number.

See https://www.python.org/dev/peps/pep-0440

Examples
    Pre-releases (alpha, beta, release candidate):
        '1.0.0a1', '1.0.0b1', '1.0.0rc1'
    Final Release:
        '1.0.0'
"""
__version__ = "1.0.0a1"
