#!/usr/bin/env python

from setuptools import find_packages, setup

from objdav._version import __version__

version = __version__


try:
    with open("README.md", encoding="utf-8") as fp:
        readme = fp.read()
except OSError:
    readme = "(Readme file not found. Running from tox?)"

# Cheroot is the preferred server for the stand-alone mode
# (`objdav.server.server_cli.py`), so we install it by default.
install_requires = ["defusedxml", "PyYAML", "json5", "cheroot"]
tests_require = ["pytest", "WebTest"]

setup(
    name="ObjDAV",
    version=version,
    description="WebDAV front end for flat key-value object stores, based on WSGI",
    long_description=readme,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Information Technology",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Topic :: Internet :: WWW/HTTP :: WSGI",
        "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    keywords="web wsgi webdav application server object-store",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=install_requires,
    py_modules=[],
    zip_safe=False,
    extras_require={
        "lxml": ["lxml"],
        "redis": ["redis"],
        "test": tests_require,
    },
    entry_points={"console_scripts": ["objdav = objdav.server.server_cli:run"]},
)
