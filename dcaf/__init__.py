"""Delegated CoAP authorization support: AIF, configuration, rules and options."""

__version__ = "0.2.0"
__all__ = ["aif", "utf8", "prng", "config", "pki", "db", "am", "options"]