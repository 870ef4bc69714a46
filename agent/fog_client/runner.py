"""
Entry point for the ``fog-client`` command.

Loads the config, resolves the server address, optionally runs the
handshake, then prints the parsed reply of one server path.
"""

import argparse
import sys

from .constants import CLIENT_VERSION
from .config import ca_cert_path, config_file, load_config, log, safe_print, setup_logging, token_path
from .state import ServerContext
from .transport import Transport
from .auth import Authenticator


def build_parser():
    parser = argparse.ArgumentParser(prog="fog-client", description="Query a FOG server.")
    parser.add_argument("postfix", help="server path, e.g. /service/jobs.php")
    parser.add_argument("--config", help=f"config file (default: {config_file()})")
    parser.add_argument("--auth", action="store_true", help="authenticate before the request")
    parser.add_argument("--mac", action="store_true", help="append this host's MAC addresses")
    parser.add_argument("--raw", action="store_true", help="print the undecoded reply")
    parser.add_argument("--version", action="version", version=f"%(prog)s {CLIENT_VERSION}")
    return parser


def main(argv=None):
    """Primary entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging()

    config = load_config(args.config)
    if not config:
        safe_print("No configuration found. Exiting.")
        return 1

    context = ServerContext.from_config(config)
    if not context.is_configured:
        safe_print("Server address could not be resolved. Exiting.")
        return 1
    log.info("Using FOG server %s", context.address)

    transport = Transport(context)
    authenticator = Authenticator.for_transport(transport, token_path(config), ca_cert_path(config))

    if args.auth and not authenticator.authenticate():
        safe_print("Authentication failed.")
        return 1

    if args.raw:
        safe_print(transport.get_raw(args.postfix))
        return 0

    response = transport.get(args.postfix, append_mac=args.mac)
    safe_print(f"{response.return_code or '(no reply)'}  {response.code.description}")
    for key, value in response.fields.items():
        safe_print(f"{key}={value}")
    return 2 if response.is_error else 0


if __name__ == "__main__":
    sys.exit(main())
