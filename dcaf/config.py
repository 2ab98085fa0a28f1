"""Authorization manager configuration read from a YAML document."""

from __future__ import annotations

import enum
import logging
import os
import re
from dataclasses import dataclass, field
from operator import itemgetter
from pathlib import Path
from typing import IO

import yaml

from dcaf.aif import Method

log = logging.getLogger(__name__)

DEFAULT_COAP_PORT = 7743
DEFAULT_COAPS_PORT = 7744

_HOME_SEARCH_PATHS = (".amrc", ".local/dcaf/amrc")
_SYSTEM_CONFIG = "/etc/amrc"
_PORT_NAMES = ("udp", "dtls", "tcp", "tls")
_INT_RE = re.compile(r"\s*([+-]?\d+)")
_INT_MIN, _INT_MAX = -(1 << 31), (1 << 31) - 1


class ConfigError(ValueError):
    """Raised when a configuration cannot be read or is malformed."""


class KeyType(enum.Enum):
    """Kind of key material held in the key store."""

    PSK = "psk"
    RPK = "rpk"


@dataclass
class ConfigRule:
    """A configured rule: a resource, allowed methods and allowed groups."""

    resource: str
    methods: int = int(Method.GET)
    allowed: list[str] = field(default_factory=list)

    def allow(self, entry: str) -> None:
        """Add ``entry`` to the allowed groups unless already present."""
        if entry not in self.allowed:
            self.allowed.append(entry)


@dataclass(frozen=True)
class Endpoint:
    """An interface address with its UDP, DTLS, TCP and TLS ports (0 = unset)."""

    interface: str
    ports: tuple[int, int, int, int] = (0, 0, 0, 0)

    @property
    def udp(self) -> int:
        return self.ports[0]

    @property
    def dtls(self) -> int:
        return self.ports[1]

    @property
    def tcp(self) -> int:
        return self.ports[2]

    @property
    def tls(self) -> int:
        return self.ports[3]


def default_config_file() -> str | None:
    """Return the path of the first existing default configuration file.

    With HOME set, ``$HOME/.amrc`` and ``$HOME/.local/dcaf/amrc`` are
    searched; otherwise ``/etc/amrc``. Returns None if nothing is found.
    """
    home = os.environ.get("HOME")
    if home is not None:
        for relative in _HOME_SEARCH_PATHS:
            path = Path(home) / relative
            if path.exists():
                return str(path)
    elif Path(_SYSTEM_CONFIG).exists():
        return _SYSTEM_CONFIG
    return None


def method_to_int(name: str) -> int:
    """Return the method bit for an upper-case method name, or 0 if unknown."""
    member = Method.__members__.get(name)
    return int(member) if member is not None else 0


def _as_str(value: object, what: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{what} must be a scalar value")
    return value


def _stoi(text: str, what: str) -> int:
    match = _INT_RE.match(text)
    if not match:
        raise ConfigError(f"{what}: {text!r} is not a number")
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        raise ConfigError(f"{what}: {text!r} is out of range")
    return value & 0xFFFF


def _flatten(node: object, result: dict[str, str]) -> None:
    """Copy scalar entries of ``node`` into ``result``, lifting nested maps one level."""
    if not isinstance(node, dict):
        return
    for key, value in node.items():
        key = _as_str(key, "key")
        if isinstance(value, str):
            result[key] = value
            log.debug("%s: %s", key, value)
        elif isinstance(value, dict):
            for item, sub in value.items():
                result[_as_str(item, "key")] = _as_str(sub, f"value of {item!r}")


class ConfigParser:
    """Reads keys, endpoints, virtual hosts, groups and rules from YAML."""

    def __init__(self) -> None:
        self.keys: dict[str, tuple[KeyType, str]] = {}
        self.hosts: dict[str, dict[str, str]] = {}
        self.rulebase: list[tuple[str, ConfigRule]] = []
        self.endpoints: list[Endpoint] = []
        self.groups: dict[str, set[str]] = {}
        self._root: dict | None = None

    def have_config(self) -> bool:
        """Return True once a configuration document has been loaded."""
        return self._root is not None

    def parse(self, stream: IO[str] | str) -> None:
        """Load configuration from a YAML stream or string."""
        try:
            root = yaml.load(stream, Loader=yaml.BaseLoader)
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse configuration: {exc}") from exc
        if root is None:
            root = {}
        if not isinstance(root, dict):
            raise ConfigError("configuration must be a mapping")
        self._root = root
        self._read_keys()
        self._read_endpoints()
        self._read_hosts()
        self._read_groups()
        self._read_rules()

    def parse_file(self, filename: str | os.PathLike) -> None:
        """Load configuration from the YAML file ``filename``."""
        try:
            with open(filename, encoding="utf-8") as stream:
                self.parse(stream)
        except OSError as exc:
            raise ConfigError(f"cannot read {filename}: {exc}") from exc

    def _section(self, name: str) -> object:
        return self._root.get(name) if self._root else None

    def _read_keys(self) -> None:
        entries = self._section("keystore")
        if not isinstance(entries, list):
            return
        for entry in entries:
            if not isinstance(entry, dict) or "name" not in entry:
                continue
            name = _as_str(entry["name"], "key name")
            psk = entry.get("psk")
            rpk = entry.get("rpk")
            if psk is not None:
                self.keys[name] = (KeyType.PSK, _as_str(psk, "psk"))
            if rpk is not None:
                self.keys[name] = (KeyType.RPK, _as_str(rpk, "rpk"))
            log.debug("key: %s", name)

    def _read_endpoints(self) -> None:
        section = self._section("endpoints")
        interfaces: list[dict[str, str]] = []
        if isinstance(section, dict):
            interfaces.append({})
            _flatten(section, interfaces[-1])
        elif isinstance(section, list):
            for entry in section:
                if isinstance(entry, dict):
                    interfaces.append({})
                    _flatten(entry, interfaces[-1])

        for iface in interfaces:
            address = iface.get("address")
            if address is None:
                continue
            if any(name in iface for name in _PORT_NAMES):
                ports = tuple(
                    _stoi(iface[name], name) if name in iface else 0
                    for name in _PORT_NAMES
                )
            else:
                ports = (DEFAULT_COAP_PORT, DEFAULT_COAPS_PORT) * 2
            self.endpoints.append(Endpoint(address, ports))

    def _read_hosts(self) -> None:
        section = self._section("host")
        if not isinstance(section, dict):
            return
        for name, entry in section.items():
            _flatten(entry, self.hosts.setdefault(_as_str(name, "host name"), {}))

    def _read_groups(self) -> None:
        section = self._section("groups")
        if not isinstance(section, list):
            return
        for group in section:
            if not isinstance(group, dict):
                continue
            name = group.get("name")
            members = group.get("members")
            if not isinstance(members, list):
                continue
            for member in members:
                if isinstance(member, str):
                    member_name = member
                elif isinstance(member, dict) and isinstance(member.get("name"), str):
                    member_name = member["name"]
                else:
                    continue
                group_name = _as_str(name, "group name")
                self.groups.setdefault(group_name, set()).add(member_name)

    def _read_rules(self) -> None:
        section = self._section("rules")
        if not isinstance(section, list):
            return
        for entry in section:
            if not isinstance(entry, dict):
                continue
            if not all(k in entry for k in ("device", "resource", "methods", "allow")):
                continue
            rule = ConfigRule(_as_str(entry["resource"], "resource"))

            methods = entry["methods"]
            mask = int(Method.GET)
            if isinstance(methods, str):
                mask = method_to_int(methods)
            elif isinstance(methods, list):
                for name in methods:
                    mask |= method_to_int(_as_str(name, "method"))
            if mask:
                rule.methods = mask

            allow = entry["allow"]
            if isinstance(allow, str):
                rule.allow(allow)
            elif isinstance(allow, list):
                for item in allow:
                    if isinstance(item, str):
                        rule.allow(item)

            self.rulebase.append((_as_str(entry["device"], "device"), rule))
        self.rulebase.sort(key=itemgetter(0))