"""Tests for providers/registry.py, providers/loader.py and providers/base.py."""

import sys
import textwrap
from unittest.mock import MagicMock, patch

import pytest
from confseal.core.errors import (
    ConfigurationError,
    ContractViolationError,
    ModuleOpenError,
    ProviderNotFoundError,
    SymbolNotFoundError,
    UnrecoverableError,
)
from confseal.document.models import ProviderConfig
from confseal.providers.base import Provider, satisfies_contract
from confseal.providers.loader import open_module
from confseal.providers.registry import (
    ProviderRegistry,
    load,
    load_or_panic,
    load_provider,
)


class FakeProvider:
    """Built-in provider double."""

    def __init__(self, name, fail=False):
        self._name = name
        self.fail = fail
        self.configure_calls = 0
        self.configured_with = None

    @property
    def name(self):
        return self._name

    def configure(self, config):
        self.configure_calls += 1
        if self.fail:
            raise ValueError("refused")
        self.configured_with = config


PLUGIN_SOURCE = textwrap.dedent(
    """
    class Storage:
        name = "ssd"

        def __init__(self):
            self.config = None

        def configure(self, config):
            if config.get("fail"):
                raise ValueError("bad config")
            self.config = dict(config)


    ssd = Storage()
    not_a_provider = 42
    """
)


@pytest.fixture
def plugin_path(tmp_path):
    path = tmp_path / "storage_plugin.py"
    path.write_text(PLUGIN_SOURCE)
    return str(path)


class TestContract:
    """Tests for the provider contract."""

    def test_fake_provider_satisfies_contract(self):
        provider = FakeProvider("memory")
        assert isinstance(provider, Provider)
        assert satisfies_contract(provider)

    def test_classes_do_not_satisfy_contract(self):
        assert not satisfies_contract(FakeProvider)

    def test_objects_without_configure(self):
        assert not satisfies_contract(42)
        assert not satisfies_contract(object())


class TestLoadBuiltin:
    """Tests for resolution against built-ins."""

    def test_returns_matching_builtin(self):
        memory, ssd = FakeProvider("memory"), FakeProvider("ssd")
        reference = ProviderConfig(provider="ssd", config={"dir": "/data"})

        assert load(reference, memory, ssd) is ssd
        assert ssd.configured_with == {"dir": "/data"}
        assert memory.configure_calls == 0

    def test_name_match_is_case_insensitive(self):
        memory = FakeProvider("InMemory")
        assert load(ProviderConfig(provider="inmemory"), memory) is memory

    def test_falls_through_to_next_builtin_on_configure_failure(self):
        first, second = FakeProvider("x", fail=True), FakeProvider("x")

        assert load(ProviderConfig(provider="x"), first, second) is second
        assert first.configure_calls == 1
        assert second.configure_calls == 1

    def test_first_configured_match_wins(self):
        first, second = FakeProvider("x"), FakeProvider("x")
        assert load(ProviderConfig(provider="x"), first, second) is first
        assert second.configure_calls == 0

    def test_not_found(self):
        with pytest.raises(ProviderNotFoundError) as exc:
            load(ProviderConfig(provider="redis"), FakeProvider("memory"))
        assert exc.value.name == "redis"
        assert "redis" in str(exc.value)

    def test_all_matches_fail_to_configure(self):
        with pytest.raises(ProviderNotFoundError):
            load(ProviderConfig(provider="x"), FakeProvider("x", fail=True))

    def test_no_builtins(self):
        with pytest.raises(ProviderNotFoundError):
            load(ProviderConfig(provider="x"))

    def test_provider_config_load_method(self):
        memory = FakeProvider("memory")
        assert ProviderConfig(provider="memory").load(memory) is memory


class TestLoadPlugin:
    """Tests for resolution against extension modules."""

    def test_loads_and_configures_symbol(self, plugin_path):
        reference = ProviderConfig(provider="ssd", plugin=plugin_path, config={"dir": "/d"})
        provider = load(reference, FakeProvider("ssd"))

        assert provider.name == "ssd"
        assert provider.config == {"dir": "/d"}
        assert not isinstance(provider, FakeProvider)

    def test_class_symbol_is_instantiated(self, plugin_path):
        provider = load(ProviderConfig(provider="Storage", plugin=plugin_path))
        assert provider.name == "ssd"
        assert provider.config == {}

    def test_nonexistent_location(self, tmp_path):
        location = str(tmp_path / "missing" / "plugin.py")
        with pytest.raises(ModuleOpenError) as exc:
            load(ProviderConfig(provider="ssd", plugin=location))
        assert exc.value.location == location

    def test_nonexistent_dotted_module(self):
        with pytest.raises(ModuleOpenError):
            load(ProviderConfig(provider="ssd", plugin="confseal_missing.plugins"))

    def test_module_failing_on_import(self, tmp_path):
        path = tmp_path / "broken.py"
        path.write_text("raise RuntimeError('boom')\n")
        with pytest.raises(ModuleOpenError):
            load(ProviderConfig(provider="ssd", plugin=str(path)))
        assert not any("broken" in name for name in sys.modules if name.startswith("confseal_ext"))

    def test_symbol_not_found(self, plugin_path):
        with pytest.raises(SymbolNotFoundError) as exc:
            load(ProviderConfig(provider="hdd", plugin=plugin_path))
        assert exc.value.symbol == "hdd"
        assert exc.value.location == plugin_path

    def test_symbol_lookup_is_case_sensitive(self, plugin_path):
        with pytest.raises(SymbolNotFoundError):
            load(ProviderConfig(provider="SSD", plugin=plugin_path))

    def test_contract_violation(self, plugin_path):
        with pytest.raises(ContractViolationError):
            load(ProviderConfig(provider="not_a_provider", plugin=plugin_path))

    def test_contract_violation_from_dotted_module(self):
        with pytest.raises(ContractViolationError):
            load(ProviderConfig(provider="dumps", plugin="json"))

    def test_configuration_failure(self, plugin_path):
        reference = ProviderConfig(provider="ssd", plugin=plugin_path, config={"fail": True})
        with pytest.raises(ConfigurationError) as exc:
            load(reference)
        assert exc.value.name == "ssd"

    def test_module_reopened_from_cache(self, plugin_path):
        assert open_module(plugin_path) is open_module(plugin_path)

    def test_package_directory(self, tmp_path):
        package = tmp_path / "storage_pkg"
        package.mkdir()
        (package / "__init__.py").write_text(PLUGIN_SOURCE)
        provider = load(ProviderConfig(provider="ssd", plugin=str(package)))
        assert provider.name == "ssd"


class TestLoadOrPanic:
    """Tests for load_or_panic and load_provider."""

    def test_success(self):
        memory = FakeProvider("memory")
        assert load_or_panic(ProviderConfig(provider="memory"), memory) is memory

    def test_escalates_failures(self, tmp_path):
        with pytest.raises(UnrecoverableError) as exc:
            load_or_panic(ProviderConfig(provider="x", plugin=str(tmp_path / "none.py")))
        assert isinstance(exc.value.__cause__, ModuleOpenError)

    def test_provider_config_method(self):
        with pytest.raises(UnrecoverableError):
            ProviderConfig(provider="x").load_or_panic(FakeProvider("y"))

    def test_load_provider_defaults_to_first(self):
        first, second = FakeProvider("a"), FakeProvider("b")

        assert load_provider(None, first, second) is first
        assert first.configure_calls == 0
        assert second.configure_calls == 0

    def test_load_provider_with_reference(self):
        first, second = FakeProvider("a"), FakeProvider("b")
        assert load_provider(ProviderConfig(provider="b"), first, second) is second

    def test_load_provider_with_reference_panics(self):
        with pytest.raises(UnrecoverableError):
            load_provider(ProviderConfig(provider="c"), FakeProvider("a"))

    def test_load_provider_requires_a_default(self):
        with pytest.raises(ValueError):
            load_provider(None)


class TestProviderRegistry:
    """Tests for ProviderRegistry."""

    def test_register_and_list_in_order(self):
        registry = ProviderRegistry()
        registry.register(FakeProvider("memory"), version="1.0", description="In-memory")
        registry.register(FakeProvider("ssd"))

        specs = registry.list()
        assert [s.name for s in specs] == ["memory", "ssd"]
        assert specs[0].version == "1.0"
        assert specs[0].description == "In-memory"

    def test_register_rejects_non_providers(self):
        with pytest.raises(TypeError):
            ProviderRegistry().register(object())

    def test_register_requires_name(self):
        with pytest.raises(ValueError):
            ProviderRegistry().register(FakeProvider(""))

    def test_resolve_uses_registered_builtins(self):
        registry = ProviderRegistry()
        ssd = FakeProvider("ssd")
        registry.register(FakeProvider("memory"))
        registry.register(ssd)
        assert registry.resolve(ProviderConfig(provider="SSD")) is ssd

    def test_resolve_or_panic(self):
        with pytest.raises(UnrecoverableError):
            ProviderRegistry().resolve_or_panic(ProviderConfig(provider="ssd"))

    def test_discover_entry_points(self):
        good = MagicMock()
        good.name = "memory"
        good.load.return_value = FakeProvider("memory")
        good.dist.version = "2.0.0"

        bad = MagicMock()
        bad.name = "broken"
        bad.load.side_effect = ImportError("missing dependency")

        registry = ProviderRegistry()
        with patch(
            "confseal.providers.registry.entry_points", return_value=[good, bad]
        ) as eps:
            assert registry.discover() == 1
            assert registry.discover() == 0

        eps.assert_called_once_with(group="confseal.providers")
        assert [s.name for s in registry.list()] == ["memory"]
        assert registry.list()[0].version == "2.0.0"
