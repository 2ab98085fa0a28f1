"""Certificate setup for the authorization manager's virtual hosts."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)

_VERIFY_DEPTH = 2


class PkiConfigError(ValueError):
    """Raised when a host configuration lacks usable certificate files."""


@dataclass(frozen=True)
class TrustRoots:
    """Trust anchors given either as a single file or as a directory."""

    ca_file: str | None = None
    ca_dir: str | None = None


@dataclass(frozen=True)
class PkiSetup:
    """PEM-based certificate settings for one virtual host."""

    public_cert: str
    private_key: str
    ca_file: str | None = None
    trust_roots: TrustRoots | None = None
    check_common_ca: bool = False
    cert_chain_validation: bool = False
    cert_chain_verify_depth: int = 0
    check_cert_revocation: bool = False
    allow_no_crl: bool = False
    allow_expired_crl: bool = False


def _trust_roots(path: str) -> TrustRoots | None:
    candidate = Path(path)
    if candidate.is_dir():
        return TrustRoots(ca_dir=path)
    if candidate.is_file():
        return TrustRoots(ca_file=path)
    log.warning("Cannot set trust anchors: %s", path)
    return None


def _check_item(config: Mapping[str, str], name: str) -> str | None:
    if name not in config:
        return f"{name} not specified"
    if not Path(config[name]).is_file():
        return f"{name} '{config[name]}' not readable"
    return None


def setup_pki(config: Mapping[str, str]) -> PkiSetup:
    """Build certificate settings from a host configuration.

    ``pem_file`` and ``key_file`` must name regular files; ``ca_file`` and
    ``trust_roots`` are optional and enable certificate chain validation.
    """
    problems = [
        problem
        for problem in (_check_item(config, "pem_file"), _check_item(config, "key_file"))
        if problem
    ]
    if problems:
        for problem in problems:
            log.error("%s", problem)
        raise PkiConfigError("; ".join(problems))

    trust_path = config.get("trust_roots")
    ca_file = config.get("ca_file")
    roots = _trust_roots(trust_path) if trust_path is not None else None
    validate = ca_file is not None or trust_path is not None

    pem_file = config["pem_file"]
    return PkiSetup(
        public_cert=pem_file,
        private_key=config["key_file"] or pem_file,
        ca_file=ca_file,
        trust_roots=roots,
        check_common_ca=validate and trust_path is None,
        cert_chain_validation=validate,
        cert_chain_verify_depth=_VERIFY_DEPTH if validate else 0,
        check_cert_revocation=validate,
        allow_no_crl=validate,
        allow_expired_crl=validate,
    )