"""Well-known property names consulted by the engine itself."""

#: Comma-separated regular expressions; keys matching any of them are redacted.
SENSITIVE_CONFIG_KEYS = "security.sensitive-config-keys"
SENSITIVE_CONFIG_KEYS_DEFAULT = "secret$,password$,ssl.keystore.pass$"

#: Comma-separated credential provider URIs consulted by ``get_password``.
CREDENTIAL_PROVIDER_PATH = "security.credential.provider.path"

#: Provenance tag recorded for values written with ``PropertyStore.set``.
PROGRAMMATIC_SOURCE = "programmatically"

#: Provenance tag used for stream resources that carry no explicit name.
STREAM_SOURCE = "input stream"

#: Replacement emitted for redacted values.
REDACTED_TEXT = "<redacted>"

#: Resources registered by default on stores created with ``load_defaults``.
DEFAULT_RESOURCES = ("core-default.xml", "core-site.xml")

#: Whether ``get_password`` falls back to the plain property value.
CREDENTIAL_CLEAR_TEXT_FALLBACK = "security.credential.clear-text-fallback"
