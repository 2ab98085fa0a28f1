# dcaf

Building blocks for delegated CoAP authorization. The package has these parts:

- `dcaf.aif` handles authorization information (AIF). It parses the
  textual form (`"GET /something"`) and the CBOR array form
  (`["/something", 1]`). It encodes permissions to CBOR and checks whether a
  request is allowed.
- `dcaf.utf8` converts between byte strings and UTF-8 for code points 0 to 255.
- `dcaf.prng` is a source of random bytes that you can replace.
- `dcaf.config` reads the YAML configuration of the authorization manager.
- `dcaf.pki` checks the certificate settings of each virtual host.
- `dcaf.db` stores rules and groups in memory and keys in SQLite.
- `dcaf.am` decides how requests are routed and which rules apply. It also
  provides the `dcaf-am` command.
- `dcaf.options` parses the command lines of an example client and an
  example resource server.

## Installation

```
pip install .
```

## AIF

```python
from dcaf.aif import Method, parse_aif, parse_aif_string, aif_to_cbor, evaluate

perms = parse_aif_string("GET /something")
assert perms[0].resource == "/something"
assert perms[0].methods == Method.GET

encoded = aif_to_cbor(perms)          # CBOR array ["/something", 1]
assert parse_aif(encoded) == perms

evaluate(perms, "/something", Method.GET)   # True
evaluate(perms, "/something", Method.POST)  # False
```

Input handling:

- `parse_aif_string` accepts a `str` or the CBOR encoding of a text string.
- `parse_aif` accepts CBOR bytes or an already decoded list.
- Both return the permissions with the most recently parsed one first.
- Both raise `AifError` when no permission could be read.
- Resource paths longer than `MAX_RESOURCE_LEN` (255) bytes are rejected.

How `evaluate` decides: a request is allowed only if at least one permission
for the URI allows the method and no permission for that URI denies it.

## UTF-8 helpers

```python
from dcaf.utf8 import utf8_length, uint8_to_utf8, utf8_to_uint8

assert uint8_to_utf8(b"\xe4") == b"\xc3\xa4"
assert utf8_length(b"\xe4") == 2
assert utf8_to_uint8(b"\xc3\xa4") == b"\xe4"
```

`utf8_to_uint8` raises `Utf8Error` if the input is not valid UTF-8. It also
raises it if the input holds a code point above 255.

## Random numbers

```python
from dcaf.prng import set_prng, prng

set_prng(lambda n: bytes(range(n)))
assert prng(4) == b"\x00\x01\x02\x03"
set_prng(None)   # back to os.urandom
```

`prng` raises `ValueError` in two cases: the requested length is negative, or
the source returns the wrong number of bytes.

## Authorization manager configuration

The configuration is a YAML mapping. It may hold the sections `keystore`,
`endpoints`, `host`, `groups` and `rules`:

```yaml
keystore:
  - name: client1
    psk: secret
endpoints:
  - address: "::1"
    udp: 7744
    dtls: 7745
host:
  am.example.com:
    pem_file: /path/to/cert.pem
    key_file: /path/to/key.pem
groups:
  - name: admins
    members: [client1]
rules:
  - device: light
    resource: /s/light
    methods: [GET, PUT]
    allow: admins
```

```python
from dcaf.config import ConfigParser

parser = ConfigParser()
parser.parse_file("amrc.yaml")
parser.keys        # {"client1": (KeyType.PSK, "secret")}
parser.endpoints   # [Endpoint("::1", (7744, 7745, 0, 0))]
parser.groups      # {"admins": {"client1"}}
parser.rulebase    # [("light", ConfigRule("/s/light", 5, ["admins"]))]
```

Notes:

- `parse` and `parse_file` raise `ConfigError` on unreadable or malformed
  input.
- An endpoint that gives no port at all gets the default ports 7743 (CoAP) and
  7744 (CoAPS) for every protocol.
- In `rules`, `methods` is either a single name or a list. When it is a list,
  GET is always included.
- `default_config_file()` looks for `~/.amrc` and then `~/.local/dcaf/amrc`.
  If `HOME` is unset, it looks for `/etc/amrc`. It returns `None` if none of
  these exists.

## Host certificates

```python
from dcaf.pki import setup_pki

setup = setup_pki(parser.hosts["am.example.com"])
setup.public_cert, setup.private_key, setup.cert_chain_validation
```

`pem_file` and `key_file` must name existing files. Otherwise `setup_pki`
raises `PkiConfigError`.

Setting `ca_file` or `trust_roots` turns on certificate chain validation, with
a verify depth of 2. `trust_roots` may be a file or a directory.

## Rules and groups

```python
from dcaf.am import applicable_rules, build_database, check_host, get_hostport

db = build_database(parser)
for rule in applicable_rules(db, "client1", "light"):
    print(rule.resource, rule.group, rule.permissions)

get_hostport("coaps://am.example.com:7744/token")   # ("am.example.com", "7744")
check_host("am.example.com", {"am.example.com"})    # RequestPolicy.HANDLE_LOCALLY
```

`applicable_rules` selects the rules for an audience whose group is `*` or one
of the subject's groups.

`Database` can also be used on its own:

- `add_to_group` and `find_groups` manage groups.
- `add_to_rules` and `find_rules` manage rules.
- `db.keys.add` and `db.keys.get_by_id` manage keys in SQLite.
- Use the database as a context manager, or call `close()` when done.

## Command-line options of the example programs

```python
from dcaf.options import parse_client_args, parse_server_args

opts = parse_client_args(["-u", "client1", "-v", "7,4", "post", "coap://[::1]/restricted"])
opts.method, opts.user, opts.dcaf_log_level, opts.coap_log_level   # 2, b"client1", 7, 4

srv = parse_server_args(["-p", "6000"])
srv.coap_port, srv.coaps_port   # 6000, 6001
```

Both parsers raise `UsageError` on invalid arguments. The client parser also
raises it when no URI is given, and when `-k` is given an empty key.

`parse_method` returns `None` for `get`, because GET is already the default.

## Running the authorization manager

```
dcaf-am -C amrc.yaml -H -v 7
```

Options:

- `-A address`: the interface address. It is only logged.
- `-a URI`: the token endpoint URI. It is only logged.
- `-C file`: the configuration file. Without it, the default file is used.
- `-H`: start without a host certificate. Use this for testing only.
- `-p port`: the CoAP port. CoAPS uses the next port. Both override the
  configured ports.
- `-v num`: the verbosity level.

Exit status:

- 1 for a usage error, or when no host has a usable certificate (unless `-H`
  is given).
- 2 when no configuration file is found.
- 3 when the configuration cannot be parsed.
- 0 after SIGINT or SIGTERM.

## What this package does not do

The package does not contain a CoAP or DTLS stack. As a result:

- `dcaf-am` does not open endpoints or answer token requests. It does not
  forward requests or issue tickets. It loads and checks the configuration,
  prints the pre-shared keys, builds the rule database and then waits until it
  is interrupted.
- There is no COSE, ticket encryption or key derivation.
- There is no runnable client or resource server. `dcaf.options` only parses
  their command lines.