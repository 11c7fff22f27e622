"""Configuration Loader for tenant product configurators.

Each tenant is a directory under ``tenants/`` holding a ``config.yaml``:

    configurator:   # metadata (id, name, description, model)
    engine:         # resolution settings (iteration cap, log level)
    options:        # option definitions, in authored order

Definitions are validated with pydantic on load. The engine itself never
reads configuration; callers pass what they need from a TenantConfig.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field

from configurator.models import ConfiguratorData, Option

logger = logging.getLogger(__name__)


# =============================================================================
# PYDANTIC MODELS FOR CONFIGURATION VALIDATION
# =============================================================================

class EngineSettings(BaseModel):
    """Resolution engine settings for one tenant."""
    max_reconcile_iterations: int = Field(default=10, ge=1, description="Cap for the stabilize loop")
    strict_stabilization: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class ConfiguratorMeta(BaseModel):
    """Descriptive metadata of a product configurator."""
    id: str = ""
    name: str = ""
    description: str = ""
    model: str = ""
    version: str = "1.0"


# =============================================================================
# MAIN CONFIGURATION CONTAINER
# =============================================================================

@dataclass
class TenantConfig:
    """Complete tenant configuration container."""

    tenant_id: str = ""
    meta: ConfiguratorMeta = field(default_factory=ConfiguratorMeta)
    engine: EngineSettings = field(default_factory=EngineSettings)
    options: list[Option] = field(default_factory=list)
    config_file: str = ""

    def to_configurator_data(self) -> ConfiguratorData:
        return ConfiguratorData(
            id=self.meta.id or self.tenant_id,
            name=self.meta.name,
            description=self.meta.description,
            model=self.meta.model,
            options=self.options,
        )

    def get_option(self, option_id: str) -> Optional[Option]:
        for option in self.options:
            if option.id == option_id:
                return option
        return None


# =============================================================================
# CONFIGURATION LOADER
# =============================================================================

# Default tenant from environment variable or fallback
DEFAULT_TENANT = os.environ.get("CONFIGURATOR_TENANT", "demo_car")

_PACKAGE_DIR = Path(__file__).parent
_TENANTS_DIR = Path(os.environ.get("CONFIGURATOR_TENANTS_DIR", _PACKAGE_DIR / "tenants"))


def _resolve_config_path(tenant_id: str, tenants_dir: Optional[Path] = None) -> Path:
    """Resolve config file path for a tenant: tenants/<tenant_id>/config.yaml."""
    return Path(tenants_dir or _TENANTS_DIR) / tenant_id / "config.yaml"


def get_available_tenants(tenants_dir: Optional[Path] = None) -> list[dict]:
    """List tenant configurators discovered under the tenants directory."""
    root = Path(tenants_dir or _TENANTS_DIR)
    tenants = []

    if not root.exists():
        return tenants

    for tenant_dir in sorted(root.iterdir()):
        config_path = tenant_dir / "config.yaml"
        if not (tenant_dir.is_dir() and config_path.exists()):
            continue
        with open(config_path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}
        meta = raw.get("configurator", {})
        tenants.append({
            "id": tenant_dir.name,
            "name": meta.get("name", tenant_dir.name),
            "description": meta.get("description", ""),
            "model": meta.get("model", ""),
            "version": str(meta.get("version", "1.0")),
            "config_file": str(config_path),
        })

    return tenants


def load_tenant_config(
    config_path: Optional[str] = None,
    tenant_id: Optional[str] = None,
    tenants_dir: Optional[Path] = None,
) -> TenantConfig:
    """Load and validate a tenant configuration from YAML.

    Args:
        config_path: Path to config file. If None, uses tenant_id to find config.
        tenant_id: Tenant identifier. If None, uses DEFAULT_TENANT.
        tenants_dir: Alternative tenants root, mainly for tests.

    Returns:
        Validated TenantConfig object

    Raises:
        ValueError: If the tenant config cannot be found.
    """
    if config_path is None:
        if tenant_id is None:
            tenant_id = DEFAULT_TENANT
        config_path = _resolve_config_path(tenant_id, tenants_dir)

    path = Path(config_path)
    if not path.exists():
        raise ValueError(f"Configuration file not found for tenant '{tenant_id}': {path}")

    with open(path, 'r', encoding='utf-8') as f:
        raw = yaml.safe_load(f) or {}

    config = TenantConfig(
        tenant_id=tenant_id or path.parent.name,
        config_file=str(path),
    )
    config.meta = ConfiguratorMeta(**{
        k: str(v) for k, v in raw.get("configurator", {}).items()
        if k in ConfiguratorMeta.model_fields
    })
    config.engine = EngineSettings(**raw.get("engine", {}))
    config.options = [Option.model_validate(item) for item in raw.get("options", [])]

    logger.info(f"[CONFIG] Loaded tenant '{config.tenant_id}' ({len(config.options)} options) from {path}")
    return config


# =============================================================================
# CONFIG STORE
# =============================================================================

class ConfigStore:
    """Per-process cache of loaded tenant configs.

    Passed to the API layer as a dependency so tests can swap in their own
    store pointing at a different tenants directory.
    """

    def __init__(self, tenants_dir: Optional[Path] = None, default_tenant: Optional[str] = None):
        self.tenants_dir = Path(tenants_dir or _TENANTS_DIR)
        self._configs: dict[str, TenantConfig] = {}
        self._current_tenant = default_tenant or DEFAULT_TENANT

    @property
    def current_tenant(self) -> str:
        return self._current_tenant

    def get(self, tenant_id: Optional[str] = None) -> TenantConfig:
        """Get the loaded config for a tenant (current tenant if None)."""
        if tenant_id is None:
            tenant_id = self._current_tenant
        if tenant_id not in self._configs:
            self._configs[tenant_id] = load_tenant_config(tenant_id=tenant_id, tenants_dir=self.tenants_dir)
        return self._configs[tenant_id]

    def set_current_tenant(self, tenant_id: str) -> TenantConfig:
        """Switch the current tenant.

        Raises:
            ValueError: If tenant_id cannot be resolved.
        """
        if not _resolve_config_path(tenant_id, self.tenants_dir).exists():
            available = [t["id"] for t in self.available()]
            raise ValueError(f"Unknown tenant '{tenant_id}'. Available: {available}")
        self._current_tenant = tenant_id
        return self.get(tenant_id)

    def reload(self, tenant_id: Optional[str] = None) -> TenantConfig:
        """Force reload of a tenant's configuration from disk."""
        if tenant_id is None:
            tenant_id = self._current_tenant
        self._configs.pop(tenant_id, None)
        return self.get(tenant_id)

    def available(self) -> list[dict]:
        return get_available_tenants(self.tenants_dir)
