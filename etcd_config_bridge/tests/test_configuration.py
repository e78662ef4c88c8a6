"""Tests for Configuration, ConfigOperator, EtcdPropertySource and the provider."""

import httpx
import pytest

from etcd_config_bridge import (
    ConfigOperator,
    Configuration,
    ConfigurationProvider,
    EtcdPropertySource,
)


@pytest.fixture
def config(server_url):
    return Configuration(
        {
            "app/name": "demo",
            "_app/name.source": f"[etcd]{server_url}",
            "_app/name.createdIndex": "3",
            "app/port": "8080",
        },
        sources=["etcd"],
    )


class TestConfiguration:
    """Test the read-only configuration view."""

    def test_mapping_access(self, config):
        assert config["app/name"] == "demo"
        assert config.get("missing") is None
        assert "app/port" in config
        assert len(config) == 4
        assert config.sources == ("etcd",)

    def test_get_or_default(self, config):
        assert config.get_or_default("app/port", "80") == "8080"
        assert config.get_or_default("app/missing", "80") == "80"
        with pytest.raises(ValueError):
            config.get_or_default("app/port", None)

    def test_properties_hide_metadata(self, config):
        assert config.properties() == {"app/name": "demo", "app/port": "8080"}

    def test_meta(self, config, server_url):
        source = f"[etcd]{server_url}"
        assert config.meta("app/name") == {"source": source, "createdIndex": "3"}
        assert config.meta("app/port") == {}

    def test_is_immutable_copy(self):
        raw = {"a": "1"}
        config = Configuration(raw)
        raw["a"] = "2"
        assert config["a"] == "1"
        with pytest.raises(TypeError):
            config["a"] = "3"

    def test_with_callable(self, config):
        def only_app_name(c):
            return Configuration({"app/name": c["app/name"]}, sources=c.sources)

        result = config.with_(only_app_name)

        assert result == Configuration({"app/name": "demo"})
        assert result.sources == ("etcd",)

    def test_with_rejects_non_configuration(self, config):
        with pytest.raises(TypeError):
            config.with_(lambda c: dict(c))


class TestConfigOperator:
    """Test the deprecated operator type."""

    def test_subclassing_warns(self):
        with pytest.deprecated_call():

            class Upper(ConfigOperator):
                def operate(self, config):
                    return Configuration({k: v.upper() for k, v in config.items()})

        result = Configuration({"a": "x"}).with_(Upper())
        assert result["a"] == "X"

    def test_is_abstract(self):
        with pytest.raises(TypeError):
            ConfigOperator()


class TestEtcdPropertySource:
    """Test the etcd backed property source."""

    def test_get_properties(self, accessor, fake_etcd):
        fake_etcd.put("/app/name", "demo")
        source = EtcdPropertySource(accessor, directory="/app")

        properties = source.get_properties()

        assert properties["app/name"] == "demo"
        assert properties["_/app.source"] == accessor.source
        assert source.name == "etcd:http://etcd.test:4001/app"
        assert source.ordinal == EtcdPropertySource.DEFAULT_ORDINAL

    def test_get_single_value(self, accessor, fake_etcd):
        fake_etcd.put("/app/name", "demo")
        source = EtcdPropertySource(accessor, directory="/app", name="app")

        assert source.get("app/name") == "demo"
        assert source.get("app/missing") is None
        assert source.name == "app"

    def test_errors_stay_in_the_map(self, make_accessor):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        source = EtcdPropertySource(make_accessor(refuse), directory="app")

        properties = source.get_properties()

        assert properties["_app.error"] == "ConnectError: Connection refused"
        assert source.get("app/name") is None


class TestConfigurationProvider:
    """Test the default configuration provider."""

    @pytest.fixture
    def provider(self, accessor, fake_etcd):
        fake_etcd.put("/app/name", "demo")
        fake_etcd.put("/app/port", "8080")
        fake_etcd.put("/override/app/port", "9090")
        return ConfigurationProvider(
            [
                EtcdPropertySource(accessor, "/app", name="app", ordinal=100),
                EtcdPropertySource(accessor, "/override", name="ovr", ordinal=50),
            ]
        )

    def test_builds_lazily_once(self, provider, fake_etcd):
        assert fake_etcd.requests == []

        config = provider.get_configuration()

        assert config is provider.get_configuration()
        assert len(fake_etcd.requests) == 2
        assert config.sources == ("ovr", "app")
        assert config["app/name"] == "demo"

    def test_set_configuration(self, provider):
        replacement = provider.create_configuration({"k": "v"}, sources=["manual"])

        provider.set_configuration(replacement)

        assert provider.get_configuration() is replacement
        assert provider.is_configuration_settable() is True

    def test_set_configuration_rejects_none(self, provider):
        with pytest.raises(ValueError):
            provider.set_configuration(None)
        with pytest.raises(TypeError):
            provider.set_configuration({"k": "v"})

    def test_reload_picks_up_changes(self, provider, fake_etcd):
        assert provider.get_configuration()["app/name"] == "demo"
        fake_etcd.put("/app/name", "renamed")

        assert provider.get_configuration()["app/name"] == "demo"
        assert provider.reload()["app/name"] == "renamed"
        assert provider.get_configuration()["app/name"] == "renamed"

    @pytest.mark.asyncio
    async def test_start_and_get_all_configs(self, provider):
        assert await provider.start() is True

        configs = await provider.get_all_configs()

        assert configs["app/name"] == "demo"
        assert configs["override/app/port"] == "9090"
        assert not any(k.startswith("_") for k in configs)

    @pytest.mark.asyncio
    async def test_start_reports_failed_source(self, make_accessor):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        provider = ConfigurationProvider(
            [EtcdPropertySource(make_accessor(refuse), "app")]
        )

        assert await provider.start() is False
        assert await provider.get_all_configs() == {}

    def test_default_source_uses_root_key(self, monkeypatch):
        monkeypatch.setenv("EtcdSettings__RootKey", " /APPS/Demo ")

        provider = ConfigurationProvider()

        (source,) = provider.property_sources
        assert source.directory == "/APPS/Demo"
