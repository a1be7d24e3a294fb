"""
server_cli
==========

:Author: Martin Wendt
:Copyright: Licensed under the MIT license, see LICENSE file in this package.

Stand-alone server that runs ObjDAV (console script ``objdav``).

Configuration is collected in this order (later sources win):

    1. :data:`~objdav.default_conf.DEFAULT_CONFIG`.
    2. The configuration file passed as ``--config=FILENAME``, or
       ``objdav.yaml`` / ``objdav.json`` in the current directory (unless
       ``--no-config`` is passed). JSON files may contain comments (JSON5).
    3. Command line options ``--host``, ``--port``, ``--root-prefix``,
       ``--server`` and ``-v`` / ``-q``.

The application is then served by cheroot (default) or by the single threaded
``wsgiref`` reference server. The object store is closed on shutdown.
"""

import argparse
import copy
import logging
import os
import platform
import sys
from pprint import pformat

import yaml
from json5 import load as json_load

from objdav import __version__, util
from objdav.default_conf import DEFAULT_CONFIG, DEFAULT_VERBOSE
from objdav.objdav_app import ObjDAVApp
from objdav.xml_tools import use_lxml

__docformat__ = "reStructuredText"

#: Tried in the current directory if no --config option is passed
DEFAULT_CONFIG_FILES = ("objdav.yaml", "objdav.json")

_logger = logging.getLogger("objdav")


def _make_parser():
    description = """\

Run a WebDAV server on top of a key-value object store.

Examples:

  Serve the objects below 'webdav/' of the store defined in ./objdav.yaml:
    objdav --root-prefix=webdav/

  Run using a specific configuration file:
    objdav --port=80 --host=0.0.0.0 --config=~/my_objdav.yaml
"""
    parser = argparse.ArgumentParser(
        prog="objdav",
        description=description,
        epilog="Licensed under the MIT license.",
        allow_abbrev=False,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "-p", "--port", type=int, help="port to serve on (default: 8080)"
    )
    parser.add_argument(
        "-H",  # '-h' is --help
        "--host",
        help="host to serve from (default: localhost). Use 0.0.0.0 to make the "
        "server reachable from other computers",
    )
    parser.add_argument(
        "--root-prefix",
        dest="root_prefix",
        help="backend key prefix that is published as '/' (e.g. 'webdav/')",
    )
    parser.add_argument(
        "--server",
        choices=tuple(SUPPORTED_SERVERS),
        help="WSGI server to use (default: cheroot)",
    )

    qv_group = parser.add_mutually_exclusive_group()
    qv_group.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=DEFAULT_VERBOSE,
        help="increment verbosity by one (default: %(default)s, range: 0..5)",
    )
    qv_group.add_argument(
        "-q", "--quiet", default=0, action="count", help="decrement verbosity by one"
    )

    cfg_group = parser.add_mutually_exclusive_group()
    cfg_group.add_argument(
        "-c",
        "--config",
        dest="config_file",
        help=f"configuration file (default: {DEFAULT_CONFIG_FILES} in current directory)",
    )
    cfg_group.add_argument(
        "--no-config",
        action="store_true",
        help=f"do not load {DEFAULT_CONFIG_FILES} from the current directory",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="print version info and exit (may be combined with --verbose)",
    )
    return parser


def _print_version(verbose):
    if verbose >= 4:
        print(
            f"ObjDAV/{__version__} {platform.python_implementation()}/"
            f"{util.PYTHON_VERSION} {platform.platform(aliased=True)}"
        )
        print(f"Python from: {sys.executable}")
    else:
        print(__version__)


def _find_config_file(args, parser):
    """Return the absolute path of the config file to use (or None)."""
    if args.config_file:
        path = os.path.abspath(os.path.expanduser(args.config_file))
        if not os.path.isfile(path):
            parser.error(f"Could not find specified configuration file: {path}")
        return path
    if args.no_config:
        return None
    for filename in DEFAULT_CONFIG_FILES:
        path = os.path.abspath(filename)
        if os.path.isfile(path):
            if args.verbose >= 3:
                print(f"Using default configuration file: {path}")
            return path
    return None


def _read_config_file(config_file, _verbose):
    """Read a YAML or JSON(5) configuration file into a dictionary."""
    config_file = os.path.abspath(config_file)
    if not os.path.exists(config_file):
        raise RuntimeError(f"Couldn't open configuration file {config_file!r}.")

    if config_file.endswith(".json"):
        loader = json_load
    elif config_file.endswith((".yaml", ".yml")):
        loader = yaml.safe_load
    else:
        raise RuntimeError(
            f"Unsupported config file format (expected yaml or json): {config_file}"
        )
    with open(config_file, encoding="utf-8-sig") as fp:
        conf = loader(fp) or {}

    conf["_config_file"] = config_file
    return conf


def _init_config(argv=None):
    """Return (cli_opts, config) from defaults, config file and command line."""
    parser = _make_parser()
    args = parser.parse_args(argv)
    args.verbose -= args.quiet

    if args.version:
        _print_version(args.verbose)
        sys.exit()

    config = copy.deepcopy(DEFAULT_CONFIG)
    config["_config_file"] = None

    config_file = _find_config_file(args, parser)
    if config_file:
        util.deep_update(config, _read_config_file(config_file, args.verbose))
    elif args.verbose >= 2:
        print("Running without configuration file.")

    for name in ("host", "port", "root_prefix", "server"):
        value = getattr(args, name)
        if value is not None:
            config[name] = value
    # -v / -q override the file
    if args.verbose != DEFAULT_VERBOSE:
        config["verbose"] = args.verbose

    if config["verbose"] >= 5:
        print(f"Configuration({config_file}):\n{pformat(util.purge_passwords(config))}")

    if not util.get_dict_value(config, "simple_dc.user_mapping", as_dict=True):
        auth_conf = util.get_dict_value(config, "http_authenticator", as_dict=True)
        if not auth_conf.get("domain_controller"):
            parser.error("No users defined (simple_dc.user_mapping is empty).")

    cli_opts = dict(vars(args), config_file=config_file)
    return cli_opts, config


def _server_banner(config, server_version):
    """Return the 'Server' response header value."""
    if config.get("suppress_version_info"):
        return "ObjDAV"
    return f"ObjDAV/{__version__} {server_version} Python/{util.PYTHON_VERSION}"


def _run_cheroot(app, config):
    """Run ObjDAV using cheroot.server (https://cheroot.cherrypy.dev/)."""
    from cheroot import wsgi

    server_args = {
        "bind_addr": (config["host"], config["port"]),
        "wsgi_app": app,
        "server_name": _server_banner(config, wsgi.Server.version),
        "numthreads": 10,
    }
    # Override or add custom args
    server_args.update(util.get_dict_value(config, "server_args", as_dict=True))

    dav_server = wsgi.Server(**server_args)
    _logger.info(f"Running {server_args['server_name']}")
    _logger.info(f"Serving on http://{config['host']}:{config['port']} ...")
    try:
        dav_server.start()
    except KeyboardInterrupt:
        _logger.warning("Caught Ctrl-C, shutting down...")
    finally:
        dav_server.stop()


def _run_wsgiref(app, config):
    """Run ObjDAV using wsgiref.simple_server (https://docs.python.org/3/library/wsgiref.html)."""
    from wsgiref.simple_server import WSGIRequestHandler, make_server

    _logger.warning("wsgiref is single threaded and not meant for production.")
    WSGIRequestHandler.server_version = _server_banner(
        config, WSGIRequestHandler.server_version
    )
    httpd = make_server(config["host"], config["port"], app)
    _logger.info(f"Serving on http://{config['host']}:{config['port']} ...")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        _logger.warning("Caught Ctrl-C, shutting down...")
    finally:
        httpd.server_close()


SUPPORTED_SERVERS = {
    "cheroot": _run_cheroot,
    "wsgiref": _run_wsgiref,
}


def run(argv=None):
    _cli_opts, config = _init_config(argv)

    # Standalone mode always logs to stdout
    config["logging"]["enable"] = True

    handler = SUPPORTED_SERVERS.get(config["server"])
    if not handler:
        raise RuntimeError(
            "Unsupported server type {!r} (expected {!r})".format(
                config["server"], "', '".join(SUPPORTED_SERVERS)
            )
        )

    app = ObjDAVApp(config)
    if not use_lxml:
        _logger.debug("lxml is not installed: using xml.etree.")
    try:
        handler(app, config)
    finally:
        app.close()


if __name__ == "__main__":
    run()
