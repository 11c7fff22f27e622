"""Pin TenantConfig loading, tenant discovery and the ConfigStore cache."""

import pytest
import yaml
from pydantic import ValidationError
from configurator.config_loader import (
    ConfigStore,
    EngineSettings,
    TenantConfig,
    get_available_tenants,
    load_tenant_config,
)


def _write_tenant(root, tenant_id, body):
    tenant_dir = root / tenant_id
    tenant_dir.mkdir(parents=True)
    (tenant_dir / "config.yaml").write_text(yaml.safe_dump(body), encoding="utf-8")


class TestConfigLoading:
    def test_load_config_returns_tenant_config(self, config):
        assert isinstance(config, TenantConfig)
        assert config.tenant_id == "demo_car"

    def test_metadata(self, config):
        assert config.meta.name == "Demo Car"
        assert config.meta.model == "models/demo_car.glb"

    def test_engine_settings(self, config):
        assert config.engine.max_reconcile_iterations == 10
        assert config.engine.strict_stabilization is False

    def test_options_in_authored_order(self, config):
        assert [o.id for o in config.options] == ["trim", "color", "exterior", "spoiler", "wheels"]

    def test_camel_case_fields_parsed(self, config):
        spoiler = config.get_option("spoiler")
        assert spoiler.default_behavior == "hide"
        assert spoiler.target_components == ["Spoiler_Mesh"]
        assert spoiler.parent_id == "exterior"
        assert spoiler.conditional_logic.rules[0].option_id == "trim"

    def test_get_option_unknown(self, config):
        assert config.get_option("nope") is None

    def test_to_configurator_data(self, config):
        data = config.to_configurator_data()
        assert data.id == "demo_car"
        assert len(data.options) == 5

    def test_missing_tenant_raises(self, tmp_path):
        with pytest.raises(ValueError):
            load_tenant_config(tenant_id="ghost", tenants_dir=tmp_path)

    def test_defaults_when_sections_missing(self, tmp_path):
        _write_tenant(tmp_path, "bare", {"options": [{"id": "a", "values": [{"id": "x"}]}]})
        config = load_tenant_config(tenant_id="bare", tenants_dir=tmp_path)
        assert config.engine == EngineSettings()
        assert config.options[0].manipulation_type == "visibility"

    def test_unknown_operator_survives_loading(self, tmp_path):
        _write_tenant(tmp_path, "odd", {"options": [
            {"id": "a", "values": [{"id": "x"}]},
            {"id": "b", "values": [{"id": "y"}], "conditionalLogic": {
                "enabled": True, "operator": "AND",
                "rules": [{"optionId": "a", "operator": "approximately", "value": "x"}],
            }},
        ]})
        config = load_tenant_config(tenant_id="odd", tenants_dir=tmp_path)
        assert config.options[1].conditional_logic.rules[0].operator == "approximately"

    def test_invalid_iteration_cap_rejected(self, tmp_path):
        _write_tenant(tmp_path, "capped", {"engine": {"max_reconcile_iterations": 0}})
        with pytest.raises(ValidationError):
            load_tenant_config(tenant_id="capped", tenants_dir=tmp_path)


class TestTenantDiscovery:
    def test_demo_tenant_discovered(self):
        ids = [t["id"] for t in get_available_tenants()]
        assert "demo_car" in ids

    def test_tenant_has_metadata(self):
        demo = next(t for t in get_available_tenants() if t["id"] == "demo_car")
        assert demo["name"] == "Demo Car"

    def test_ignores_directories_without_config(self, tmp_path):
        (tmp_path / "empty").mkdir()
        _write_tenant(tmp_path, "real", {"configurator": {"name": "Real"}})
        assert [t["id"] for t in get_available_tenants(tmp_path)] == ["real"]

    def test_missing_root(self, tmp_path):
        assert get_available_tenants(tmp_path / "nope") == []


class TestConfigStore:
    def test_caches_configs(self):
        store = ConfigStore(default_tenant="demo_car")
        assert store.get() is store.get("demo_car")

    def test_reload_returns_fresh_object(self):
        store = ConfigStore(default_tenant="demo_car")
        first = store.get()
        assert store.reload() is not first

    def test_set_current_tenant(self, tmp_path):
        _write_tenant(tmp_path, "one", {"configurator": {"name": "One"}})
        _write_tenant(tmp_path, "two", {"configurator": {"name": "Two"}})
        store = ConfigStore(tenants_dir=tmp_path, default_tenant="one")
        assert store.set_current_tenant("two").meta.name == "Two"
        assert store.current_tenant == "two"

    def test_set_unknown_tenant_raises(self, tmp_path):
        store = ConfigStore(tenants_dir=tmp_path, default_tenant="one")
        with pytest.raises(ValueError, match="Unknown tenant"):
            store.set_current_tenant("ghost")
