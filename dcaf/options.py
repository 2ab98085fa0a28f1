"""Command-line handling for the DCAF example client and resource server."""

from __future__ import annotations

import getopt
import re
from dataclasses import dataclass

VERSION = "1.0"

MAX_USER = 128
"""Maximum length of a user name (PSK identity) in bytes."""
MAX_KEY = 64
"""Maximum length of a pre-shared key in bytes."""
NI_MAXHOST = 1025
"""Size of a host name buffer; addresses keep at most one byte less."""

AM_DEFAULT_HOST = "cam.libcoap.net"
AM_DEFAULT_PORT = "7744"
AM_DEFAULT_PATH = "/"
AM_DEFAULT_URI = f"coaps://{AM_DEFAULT_HOST}:{AM_DEFAULT_PORT}{AM_DEFAULT_PATH}"

COAP_DEFAULT_PORT = 5683
COAPS_DEFAULT_PORT = 5684

METHOD_GET = 1
"""CoAP method code for GET, the default request method."""

LOG_ERR = 3
LOG_WARNING = 4
DEFAULT_CLIENT_LOG_LEVELS = (LOG_WARNING, LOG_WARNING, LOG_ERR)
"""Default (DCAF, CoAP, DTLS) log levels of the client."""
DEFAULT_SERVER_LOG_LEVEL = LOG_WARNING

DEFAULT_WAIT_SECONDS = 90

_METHOD_NAMES = ("get", "post", "put", "delete", "fetch", "patch", "ipatch")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class UsageError(ValueError):
    """Raised when command-line arguments are invalid."""


@dataclass
class ClientOptions:
    """Settings of the example client as given on the command line."""

    uri: str
    method: int = METHOD_GET
    host: str = "::"
    address: str = ""
    am_uri: str = AM_DEFAULT_URI
    coap_port: int = 0
    coaps_port: int = 0
    user: bytes = b""
    key: bytes = b""
    dcaf_log_level: int = DEFAULT_CLIENT_LOG_LEVELS[0]
    coap_log_level: int = DEFAULT_CLIENT_LOG_LEVELS[1]
    dtls_log_level: int = DEFAULT_CLIENT_LOG_LEVELS[2]
    wait_seconds: int = DEFAULT_WAIT_SECONDS

    @property
    def timeout_ms(self) -> int:
        """The request timeout in milliseconds."""
        return self.wait_seconds * 1000


@dataclass
class ServerOptions:
    """Settings of the example resource server as given on the command line."""

    host: str = "::"
    am_uri: str | None = None
    key: bytes | None = None
    coap_port: int = COAP_DEFAULT_PORT
    coaps_port: int = COAPS_DEFAULT_PORT
    log_level: int = DEFAULT_SERVER_LOG_LEVEL


def _strtol(text: str, pos: int = 0) -> tuple[int, int]:
    """Read a leading integer like strtol(); return (value, end position)."""
    match = _LEADING_INT.match(text, pos)
    if not match:
        return 0, pos
    return int(match.group(1)), match.end()


def _truncate_address(address: str) -> str:
    return address[: NI_MAXHOST - 1]


def parse_method(arg: str) -> int | None:
    """Return the CoAP method code for a method name, or None if not recognised.

    Names are matched case-insensitively. GET is the default method and is
    not recognised as an explicit argument.
    """
    lowered = arg.lower()
    for code, name in enumerate(_METHOD_NAMES[1:], start=2):
        if lowered == name:
            return code
    return None


def read_user(arg: str, maxlen: int) -> bytes:
    """Return the user identity ``arg`` as bytes, cut to ``maxlen`` bytes."""
    return arg.encode("utf-8")[:maxlen]


def read_key(arg: str, maxlen: int) -> bytes | None:
    """Return the key ``arg`` as bytes cut to ``maxlen`` bytes, or None if empty."""
    key = arg.encode("utf-8")[:maxlen]
    return key or None


def parse_log_levels(arg: str, defaults: tuple[int, int, int]) -> tuple[int, int, int]:
    """Parse ``dcaf[,coap[,dtls]]`` log levels; missing parts keep their defaults."""
    levels = list(defaults)
    levels[0], pos = _strtol(arg)
    for idx in (1, 2):
        if pos < len(arg) and arg[pos] == ",":
            levels[idx], pos = _strtol(arg, pos + 1)
        else:
            break
    return levels[0], levels[1], levels[2]


def _client_usage(program: str = "dcaf-client") -> str:
    dcaf, coap, dtls = DEFAULT_CLIENT_LOG_LEVELS
    return (
        f"{program} v{VERSION} -- DCAF example client\n\n"
        f"Usage: {program} [-A address] [-a URI] [-k key] [-p port] \n"
        "\t\t [-u user] [-v dcaf[,coap[,dtls]]] [method] URI\n\n"
        "\tURI can be an absolute URI or a URI prefixed with scheme and host.\n\n"
        "\tMethod can be any of GET|PUT|POST|DELETE|FETCH|PATCH|IPATCH. If no\n"
        "\tmethod was specified the default is GET.\n\n"
        "\t-A address\tinterface address to bind to\n"
        "\t-a URI\t\tauthorization manager (AM) URI (the \"token endpoint\")\n"
        "\t-k key \t\tPre-shared key for the specified user. This argument\n"
        "\t       \t\trequires (D)TLS with PSK to be available\n"
        "\t-p port\t\tListen on specified port\n"
        "\t-u user\t\tUser identity for pre-shared key mode. This argument\n"
        "\t       \t\trequires (D)TLS with PSK to be available\n"
        "\t-v num[,num[,num]] \tVerbosity level.\n"
        "\t       \t\tThe first number denotes the DCAF log level, the\n"
        "\t       \t\tsecond number the CoAP log level, and the third\n"
        f"\t       \t\tnumber is the DTLS log level. Default is {dcaf},{coap},{dtls}.\n"
    )


def _server_usage(program: str = "s") -> str:
    return (
        f"{program} v{VERSION} -- a CoAP server with authenticated authorization\n\n"
        f"usage: {program} [-A address] [-a URI] [-k key] [-p port] [-v num]\n\n"
        "\t-A address\tinterface address to bind to\n"
        "\t-a URI\t\tauthorization manager (AM) URI (the \"token endpoint\")\n"
        "\t-k key\t\tAM shared secret\n"
        "\t-p port\t\tlisten on specified port\n"
        "\t-v num\t\tverbosity level (default: 3)\n"
    )


def parse_client_args(argv: list[str]) -> ClientOptions:
    """Parse client arguments (without the program name) into ClientOptions."""
    try:
        opts, positional = getopt.gnu_getopt(list(argv), "a:k:p:u:v:A:")
    except getopt.GetoptError as exc:
        raise UsageError(f"{exc}\n{_client_usage()}") from exc

    address = ""
    am_uri = AM_DEFAULT_URI
    coap_port = coaps_port = 0
    user = b""
    key: bytes | None = b""
    levels = DEFAULT_CLIENT_LOG_LEVELS
    for opt, value in opts:
        if opt == "-A":
            address = _truncate_address(value)
        elif opt == "-k":
            key = read_key(value, MAX_KEY)
        elif opt == "-p":
            coap_port = _strtol(value)[0] & 0xFFFF
            coaps_port = (coap_port + 1) & 0xFFFF
        elif opt == "-a":
            am_uri = value
        elif opt == "-u":
            user = read_user(value, MAX_USER)
        elif opt == "-v":
            levels = parse_log_levels(value, levels)

    method = METHOD_GET
    if positional:
        explicit = parse_method(positional[0])
        if explicit is not None:
            method = explicit
            positional = positional[1:]
    if not positional:
        raise UsageError(f"no URI given\n{_client_usage()}")

    if key is None:
        raise UsageError("Invalid user name or key specified")

    return ClientOptions(
        uri=positional[0],
        method=method,
        address=address,
        am_uri=am_uri,
        coap_port=coap_port,
        coaps_port=coaps_port,
        user=user,
        key=key,
        dcaf_log_level=levels[0],
        coap_log_level=levels[1],
        dtls_log_level=levels[2],
    )


def parse_server_args(argv: list[str]) -> ServerOptions:
    """Parse resource server arguments (without the program name)."""
    try:
        opts, _ = getopt.gnu_getopt(list(argv), "A:a:k:p:v:")
    except getopt.GetoptError as exc:
        raise UsageError(f"{exc}\n{_server_usage()}") from exc

    options = ServerOptions()
    for opt, value in opts:
        if opt == "-A":
            options.host = _truncate_address(value)
        elif opt == "-a":
            options.am_uri = value
        elif opt == "-k":
            options.key = read_key(value, MAX_KEY)
        elif opt == "-p":
            options.coap_port = _strtol(value)[0] & 0xFFFF
            options.coaps_port = (options.coap_port + 1) & 0xFFFF
        elif opt == "-v":
            options.log_level = _strtol(value)[0]
    return options