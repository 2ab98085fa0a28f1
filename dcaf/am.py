"""DCAF authorization manager: request routing, rule lookup and start-up."""

from __future__ import annotations

import enum
import getopt
import logging
import os
import re
import signal
import socket
import sys
import threading
from collections.abc import Collection
from dataclasses import dataclass

from dcaf.config import ConfigError, ConfigParser, KeyType, default_config_file
from dcaf.db import Database, Rule
from dcaf.pki import PkiConfigError, setup_pki

log = logging.getLogger(__name__)

VERSION = "0.2.0"
RESOURCE_CHECK_TIME = 2
DEFAULT_ADDRESS = "::1"
WILDCARD_GROUP = "*"

_PROTOCOLS = ("udp", "dtls", "tcp", "tls")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_LOG_WARNING = 4


class RequestPolicy(enum.Enum):
    """What to do with a ticket request, depending on its target host."""

    DROP_REQUEST = enum.auto()
    FORWARD_REQUEST = enum.auto()
    HANDLE_LOCALLY = enum.auto()


@dataclass(frozen=True)
class PskKey:
    """A pre-shared key together with its key identifier."""

    kid: bytes
    data: bytes
    algorithm: str = "AES-128"


def _is_ascii_alpha(char: str) -> bool:
    return char.isascii() and char.isalpha()


def get_hostport(uri: str) -> tuple[str, str]:
    """Split ``uri`` into host and port, skipping a leading ``scheme://``.

    The port is cut at its first non-digit; it is empty if absent.
    """
    host = uri
    pos = host.find(":")
    if pos >= 0 and all(_is_ascii_alpha(c) for c in host[:pos]) and host[pos + 1:pos + 3] == "//":
        host = host[pos + 3:]

    port = ""
    pos = host.find(":")
    if pos >= 0:
        port = host[pos + 1:]
        host = host[:pos]
        digits = 0
        while digits < len(port) and port[digits] in "0123456789":
            digits += 1
        port = port[:digits]
    return host, port


def check_host(host: str, vhosts: Collection[str]) -> RequestPolicy:
    """Decide whether a request for ``host`` is handled here, forwarded or dropped."""
    if host in vhosts:
        return RequestPolicy.HANDLE_LOCALLY
    if host:
        return RequestPolicy.FORWARD_REQUEST
    return RequestPolicy.DROP_REQUEST


def applicable_rules(db: Database, kid: str, audience: str) -> list[Rule]:
    """Return the rules for ``audience`` that apply to the subject ``kid``.

    A rule applies if its group is the wildcard or one of the subject's groups.
    """
    groups = set(db.find_groups(kid))
    if not groups:
        log.debug("no known groups for this identity")
    for group in sorted(groups):
        log.debug("known group for this identity %s", group)

    rules = []
    for rule in db.find_rules(audience):
        if rule.group == WILDCARD_GROUP or rule.group in groups:
            rules.append(rule)
        else:
            log.debug("remove rule for %s", rule.group)

    log.debug("found %d rules", len(rules))
    for rule in rules:
        log.debug("allow %d on %s for %s", rule.permissions, rule.resource, rule.group)
    return rules


def make_key(identity: str, key_type: tuple[KeyType, str]) -> PskKey | None:
    """Create a pre-shared key for ``identity``; other key kinds yield None."""
    kind, material = key_type
    if kind is not KeyType.PSK:
        return None
    return PskKey(kid=identity.encode("utf-8"), data=material.encode("utf-8"))


def build_database(parser: ConfigParser) -> Database:
    """Fill an in-memory rule database from a parsed configuration."""
    db = Database("test", memonly=True)
    for audience, config_rule in parser.rulebase:
        for group in config_rule.allowed:
            db.add_to_rules(audience, Rule(config_rule.resource, group, config_rule.methods))
    for group, members in sorted(parser.groups.items()):
        for member in sorted(members):
            log.debug("add %s to group %s", member, group)
            db.add_to_group(member, group)
    return db


def _usage(program: str) -> None:
    name = os.path.basename(program)
    sys.stderr.write(
        f"{name} v{VERSION} -- DCAF Authorization Server\n\n"
        f"usage: {name} [-A address] [-a uri] [-C file] [-p port] [-v num]\n\n"
        "\t-A address\tinterface address to bind to\n"
        "\t-a URI\t\tauthorization manager (AM) URI (the \"token endpoint\")\n"
        "\t-C file\t\tload configuration file\n"
        "\t-H \tstart without host certificate (use for testing only)\n"
        "\t-p port\t\tlisten on specified port\n"
        "\t-v num\t\tverbosity level (default: 3)\n"
    )


def _strtol(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _python_log_level(level: int) -> int:
    if level <= 2:
        return logging.CRITICAL
    if level == 3:
        return logging.ERROR
    if level == 4:
        return logging.WARNING
    if level <= 6:
        return logging.INFO
    return logging.DEBUG


def _endpoint_addresses(
    parser: ConfigParser, coap_port: int, coaps_port: int
) -> list[tuple[str, str, int]]:
    """Return (protocol, interface, port) for every configured endpoint port."""
    result = []
    for endpoint in parser.endpoints:
        for idx, configured in enumerate(endpoint.ports):
            if configured == 0:
                continue
            override = coaps_port if idx % 2 else coap_port
            port = override if override != 0 else configured
            try:
                socket.getaddrinfo(endpoint.interface, port)
            except (socket.gaierror, UnicodeError):
                log.critical("cannot set interface address '%s'", endpoint.interface)
                continue
            result.append((_PROTOCOLS[idx], endpoint.interface, port))
    return result


def main(argv: list[str] | None = None) -> int:
    """Run the authorization manager; returns the process exit status."""
    if argv is None:
        argv = sys.argv
    program, args = (argv[0], argv[1:]) if argv else ("dcaf-am", [])

    host = DEFAULT_ADDRESS
    am_uri: str | None = None
    config_file = default_config_file() or ""
    need_vhost = True
    coap_port = coaps_port = 0
    log_level = _LOG_WARNING

    try:
        opts, _ = getopt.gnu_getopt(args, "a:A:C:Hg:p:v:l:")
    except getopt.GetoptError:
        _usage(program)
        return 1
    for opt, value in opts:
        if opt == "-A":
            host = value
        elif opt == "-a":
            am_uri = value
        elif opt == "-C":
            config_file = value
        elif opt == "-H":
            need_vhost = False
        elif opt == "-p":
            coap_port = _strtol(value) & 0xFFFF
            coaps_port = (coap_port + 1) & 0xFFFF
        elif opt == "-v":
            log_level = _strtol(value)
        else:
            _usage(program)
            return 1

    if not config_file:
        print("No config file found.", file=sys.stderr)
        return 2
    parser = ConfigParser()
    try:
        parser.parse_file(config_file)
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        print(f"Cannot parse config '{config_file}'", file=sys.stderr)
        return 3

    logging.basicConfig(level=_python_log_level(log_level))
    log.debug("bind to %s, AM URI %s", host, am_uri)

    for proto, interface, port in _endpoint_addresses(parser, coap_port, coaps_port):
        log.debug("endpoint %s %s:%d set", proto, interface, port)

    keys: dict[bytes, PskKey] = {}
    for name, key_type in parser.keys.items():
        key = make_key(name, key_type)
        if key is not None:
            print(f'"{name}" \u2192 "{key_type[1]}"')
            keys[key.kid] = key

    vhosts: set[str] = set()
    configured = 0
    for name, host_config in sorted(parser.hosts.items()):
        log.debug('vhost "%s"', name)
        vhosts.add(name)
        if need_vhost:
            try:
                setup_pki(host_config)
            except PkiConfigError:
                continue
            log.debug("Certificate for vhost %s configured", name)
            configured += 1
            break
    if need_vhost and configured == 0:
        log.error("Need host certificate")
        return 1

    stop = threading.Event()

    def _handle_signal(signum: int, frame: object) -> None:
        stop.set()

    with build_database(parser):
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
        while not stop.wait(RESOURCE_CHECK_TIME):
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())