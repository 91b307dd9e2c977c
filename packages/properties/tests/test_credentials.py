"""Tests for credential providers and get_password."""

import json
import os

import pytest

from dataknobs_properties import (
    CredentialError,
    CredentialProvider,
    CredentialProviderFactory,
    EnvironmentCredentialProvider,
    JsonFileCredentialProvider,
    PropertyStore,
    get_deprecation_registry,
)

PROVIDER_PATH = "security.credential.provider.path"


@pytest.fixture
def creds_file(temp_dir):
    """Write a JSON credential file."""
    path = temp_dir / "creds.json"
    path.write_text(json.dumps({"db.password": "from-file", "old.secret": "legacy"}))
    return path


class TestJsonFileProvider:
    """Test the local JSON provider."""

    def test_from_uri(self, creds_file):
        """Test the provider reads the file named by its URI."""
        provider = JsonFileCredentialProvider.from_uri(f"localjson://file{creds_file.as_posix()}")

        assert provider.get_credential("db.password") == "from-file"
        assert provider.get_credential("absent") is None
        assert sorted(provider.aliases()) == ["db.password", "old.secret"]

    def test_create_and_flush(self, temp_dir):
        """Test new entries are persisted on flush."""
        path = temp_dir / "nested" / "new.json"
        provider = JsonFileCredentialProvider(path)
        provider.create_credential_entry("a", "1")
        provider.flush()

        assert json.loads(path.read_text()) == {"a": "1"}
        assert oct(os.stat(path).st_mode & 0o777) == "0o600"
        with pytest.raises(CredentialError, match="already exists"):
            provider.create_credential_entry("a", "2")

    def test_delete(self, creds_file):
        """Test entries can be deleted."""
        provider = JsonFileCredentialProvider(creds_file)
        provider.delete_credential_entry("old.secret")
        provider.flush()

        assert JsonFileCredentialProvider(creds_file).aliases() == ["db.password"]
        with pytest.raises(CredentialError):
            provider.delete_credential_entry("old.secret")

    def test_invalid_file(self, temp_dir):
        """Test unreadable content raises CredentialError."""
        path = temp_dir / "bad.json"
        path.write_text("[1, 2]")

        with pytest.raises(CredentialError, match="must contain an object"):
            JsonFileCredentialProvider(path).get_credential("a")


class TestEnvironmentProvider:
    """Test the environment variable provider."""

    def test_variable_names(self, monkeypatch):
        """Test aliases map to prefixed upper-case variable names."""
        monkeypatch.setenv("APP_DB_PASSWORD", "from-env")
        provider = EnvironmentCredentialProvider.from_uri("env://APP_")

        assert provider.variable_name("db.password") == "APP_DB_PASSWORD"
        assert provider.get_credential("db.password") == "from-env"
        with pytest.raises(CredentialError, match="read-only"):
            provider.create_credential_entry("x", "y")


class TestGetPassword:
    """Test provider chain lookup with clear-text fallback."""

    def test_provider_wins_over_property(self, store, creds_file):
        """Test a provider value is preferred to the plain property."""
        store.set(PROVIDER_PATH, f"localjson://file{creds_file.as_posix()}")
        store.set("db.password", "clear-text")

        assert store.get_password("db.password") == "from-file"

    def test_chain_order(self, store, creds_file, monkeypatch):
        """Test providers are consulted in configured order."""
        monkeypatch.setenv("APP_DB_PASSWORD", "from-env")
        store.set(PROVIDER_PATH, f"env://APP_, localjson://file{creds_file.as_posix()}")

        assert store.get_password("db.password") == "from-env"

    def test_deprecated_alias_in_provider(self, store, creds_file):
        """Test the deprecated name of a key is tried as well."""
        get_deprecation_registry().add_deprecation("old.secret", "new.secret")
        store.set(PROVIDER_PATH, f"localjson://file{creds_file.as_posix()}")

        assert store.get_password("new.secret") == "legacy"

    def test_fallback_to_property(self, store):
        """Test the resolved property is used when no provider has the key."""
        store.set("base", "s3")
        store.set("api.password", "${base}cr3t")

        assert store.get_password("api.password") == "s3cr3t"
        assert store.get_password("absent") is None

    def test_fallback_disabled(self, store):
        """Test clear-text fallback can be turned off."""
        store.set("api.password", "plain")
        store.set_boolean("security.credential.clear-text-fallback", False)

        assert store.get_password("api.password") is None

    def test_unknown_scheme(self, store):
        """Test an unknown provider scheme is an error."""
        store.set(PROVIDER_PATH, "vault://somewhere")

        with pytest.raises(CredentialError, match="No CredentialProviderFactory"):
            store.get_password("x")

    def test_registered_factory(self):
        """Test custom schemes can be registered per factory."""

        class StaticProvider(CredentialProvider):
            def get_credential(self, alias):
                return "static" if alias == "k" else None

        factory = CredentialProviderFactory()
        factory.register("static", lambda uri: StaticProvider())
        store = PropertyStore(credential_providers=factory)
        store.set(PROVIDER_PATH, "static://")

        assert store.get_password("k") == "static"


class TestProviderFactory:
    """Test the scheme table."""

    def test_schemes_are_registry_keys(self):
        """Test the scheme table is a registry with case-insensitive keys."""
        factory = CredentialProviderFactory()
        factory.register("STATIC", lambda uri: EnvironmentCredentialProvider("S_"))

        assert factory.list_keys() == ["localjson", "env", "static"]
        assert "static" in factory
        assert isinstance(factory.create("static://x"), EnvironmentCredentialProvider)
