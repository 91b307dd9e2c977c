"""Credential providers consulted by ``PropertyStore.get_password``.

Providers are configured with the ``security.credential.provider.path``
property, a comma-separated list of provider URIs:

- ``localjson://file/path/to/creds.json`` - a JSON object of alias to secret
- ``env://PREFIX_`` - environment variables; alias ``db.password`` is read
  from ``PREFIX_DB_PASSWORD``

Additional schemes can be registered on a :class:`CredentialProviderFactory`.

Example:
    ```python
    store = PropertyStore()
    store.set(CREDENTIAL_PROVIDER_PATH, "localjson://file/etc/app/creds.json")
    store.get_password("db.password")
    ```
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List
from urllib.parse import urlsplit
from urllib.request import url2pathname

from dataknobs_common.registry import Registry

from .exceptions import CredentialError

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], "CredentialProvider"]


class CredentialProvider(ABC):
    """Source of secret values keyed by alias."""

    @abstractmethod
    def get_credential(self, alias: str) -> str | None:
        """Get the secret stored under an alias, or None."""
        raise NotImplementedError

    def aliases(self) -> List[str]:
        return []

    def create_credential_entry(self, alias: str, credential: str) -> None:
        raise CredentialError(
            f"{type(self).__name__} is read-only", context={"alias": alias}
        )

    def delete_credential_entry(self, alias: str) -> None:
        raise CredentialError(
            f"{type(self).__name__} is read-only", context={"alias": alias}
        )

    def flush(self) -> None:
        """Persist pending changes (no-op for read-only providers)."""
        return None


class JsonFileCredentialProvider(CredentialProvider):
    """Credentials kept in a local JSON file."""

    SCHEME = "localjson"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self._entries: Dict[str, str] | None = None
        self._dirty = False

    @classmethod
    def from_uri(cls, uri: str) -> "JsonFileCredentialProvider":
        parts = urlsplit(uri)
        if parts.netloc not in ("", "file"):
            raise CredentialError(
                f"Unsupported location in credential provider URI: {uri}",
                context={"uri": uri},
            )
        return cls(url2pathname(parts.path))

    def _load(self) -> Dict[str, str]:
        if self._entries is None:
            if self.path.exists():
                try:
                    data = json.loads(self.path.read_text(encoding="utf-8"))
                except (OSError, json.JSONDecodeError) as e:
                    raise CredentialError(
                        f"Failed to read credential file {self.path}: {e}",
                        context={"path": str(self.path)},
                    ) from e
                if not isinstance(data, dict):
                    raise CredentialError(
                        f"Credential file must contain an object: {self.path}",
                        context={"path": str(self.path)},
                    )
                self._entries = {str(k): str(v) for k, v in data.items()}
            else:
                self._entries = {}
        return self._entries

    def get_credential(self, alias: str) -> str | None:
        with self._lock:
            return self._load().get(alias)

    def aliases(self) -> List[str]:
        with self._lock:
            return list(self._load())

    def create_credential_entry(self, alias: str, credential: str) -> None:
        with self._lock:
            entries = self._load()
            if alias in entries:
                raise CredentialError(
                    f"Credential {alias} already exists in {self.path}",
                    context={"alias": alias},
                )
            entries[alias] = credential
            self._dirty = True

    def delete_credential_entry(self, alias: str) -> None:
        with self._lock:
            entries = self._load()
            if alias not in entries:
                raise CredentialError(
                    f"Credential {alias} does not exist in {self.path}",
                    context={"alias": alias},
                )
            del entries[alias]
            self._dirty = True

    def flush(self) -> None:
        with self._lock:
            if not self._dirty:
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(self._load(), indent=2), encoding="utf-8")
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
            self._dirty = False

    def __repr__(self) -> str:
        return f"{self.SCHEME}://file{self.path.as_posix()}"


class EnvironmentCredentialProvider(CredentialProvider):
    """Read-only credentials taken from environment variables."""

    SCHEME = "env"

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix

    @classmethod
    def from_uri(cls, uri: str) -> "EnvironmentCredentialProvider":
        return cls(uri.split("://", 1)[1] if "://" in uri else "")

    def variable_name(self, alias: str) -> str:
        return self.prefix + alias.upper().replace(".", "_").replace("-", "_")

    def get_credential(self, alias: str) -> str | None:
        return os.environ.get(self.variable_name(alias))

    def __repr__(self) -> str:
        return f"{self.SCHEME}://{self.prefix}"


class CredentialProviderFactory(Registry[ProviderFactory]):
    """Creates credential providers from URIs by scheme."""

    def __init__(self) -> None:
        super().__init__("credential_providers")
        self.register(JsonFileCredentialProvider.SCHEME, JsonFileCredentialProvider.from_uri)
        self.register(EnvironmentCredentialProvider.SCHEME, EnvironmentCredentialProvider.from_uri)

    def register(
        self,
        key: str,
        item: ProviderFactory,
        metadata: Dict[str, Any] | None = None,
        allow_overwrite: bool = True,
    ) -> None:
        """Register the provider factory for a URI scheme.

        Schemes are case-insensitive and a later registration replaces an
        earlier one.
        """
        super().register(key.lower(), item, metadata=metadata, allow_overwrite=allow_overwrite)

    def create(self, uri: str) -> CredentialProvider:
        """Create the provider for a URI.

        Raises:
            CredentialError: If no factory handles the URI's scheme
        """
        factory = self.get_optional(urlsplit(uri).scheme.lower())
        if factory is None:
            raise CredentialError(
                f"No CredentialProviderFactory for {uri}", context={"uri": uri}
            )
        return factory(uri)

    def get_providers(self, uris: List[str]) -> List[CredentialProvider]:
        providers = []
        for uri in uris:
            logger.debug(f"Creating credential provider for {uri}")
            providers.append(self.create(uri))
        return providers


_factory = CredentialProviderFactory()


def get_credential_provider_factory() -> CredentialProviderFactory:
    """Get the process-wide credential provider factory."""
    return _factory
