import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from configurator.config_loader import ConfigStore, TenantConfig
from configurator.logic.component_mapper import Component, apply_configuration, build_instructions
from configurator.logic.reconciler import ConfigurationUnstableError, reconcile, select_value, stabilize
from configurator.logic.validation import validate_options
from configurator.logic.visibility import visible_options, visible_values
from configurator.models import (
    ApplyRequest,
    ApplyResponse,
    ComponentInstructionModel,
    ComponentStateModel,
    ConfiguratorData,
    ReconcileRequest,
    ReconcileResponse,
    SelectionChangeModel,
    SelectionRequest,
    SelectValueRequest,
    ValidationResponse,
    VisibilityResponse,
    VisibleOption,
    VisibleValue,
)

load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(title="Product Configurator API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

_store: Optional[ConfigStore] = None


def get_store() -> ConfigStore:
    """Dependency providing the tenant config store."""
    global _store
    if _store is None:
        _store = ConfigStore()
    return _store


def _load_tenant(store: ConfigStore, tenant_id: str) -> TenantConfig:
    try:
        config = store.get(tenant_id)
    except ValidationError as e:
        logger.error(f"[CONFIG] Invalid configuration for tenant '{tenant_id}': {e}")
        raise HTTPException(status_code=500, detail=f"Invalid configuration for tenant '{tenant_id}'")
    except ValueError as e:
        logger.warning(f"[CONFIG] {e}")
        raise HTTPException(status_code=404, detail=str(e))
    logging.getLogger("configurator").setLevel(config.engine.log_level)
    return config


def _change_models(changes) -> list[SelectionChangeModel]:
    return [SelectionChangeModel(**change.to_dict()) for change in changes]


@app.get("/")
async def root():
    return {"message": "Product Configurator API is running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.get("/configurators")
async def list_configurators(store: ConfigStore = Depends(get_store)):
    """List tenant configurators available on this server."""
    return {"configurators": store.available(), "current": store.current_tenant}


@app.get("/configurators/{tenant_id}", response_model=ConfiguratorData)
async def get_configurator(tenant_id: str, store: ConfigStore = Depends(get_store)):
    return _load_tenant(store, tenant_id).to_configurator_data()


@app.get("/configurators/{tenant_id}/validate", response_model=ValidationResponse)
async def validate_configurator(tenant_id: str, store: ConfigStore = Depends(get_store)):
    """Authoring-time check of the tenant's option definitions."""
    config = _load_tenant(store, tenant_id)
    errors = validate_options(config.options)
    return ValidationResponse(tenant_id=tenant_id, is_valid=not errors, errors=errors)


@app.post("/configurators/{tenant_id}/visibility", response_model=VisibilityResponse)
async def get_visibility(tenant_id: str, request: SelectionRequest, store: ConfigStore = Depends(get_store)):
    """Options and values the picker UI should currently render."""
    config = _load_tenant(store, tenant_id)
    options = []
    for option in visible_options(config.options, request.selections):
        values = [] if option.is_group else visible_values(option, request.selections, config.options)
        options.append(VisibleOption(
            id=option.id,
            name=option.name,
            is_group=option.is_group,
            parent_id=option.parent_id,
            selected_value_id=request.selections.get(option.id),
            values=[VisibleValue(id=v.id, name=v.name, color=v.color) for v in values],
        ))
    return VisibilityResponse(options=options)


@app.post("/configurators/{tenant_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_selections(tenant_id: str, request: ReconcileRequest, store: ConfigStore = Depends(get_store)):
    """Correct selections that point at values hidden by the current rules."""
    config = _load_tenant(store, tenant_id)

    if not request.stabilize:
        result = reconcile(config.options, request.selections)
        return ReconcileResponse(selections=result.selections, changes=_change_models(result.changes))

    try:
        result = stabilize(
            config.options,
            request.selections,
            max_iterations=config.engine.max_reconcile_iterations,
            strict=config.engine.strict_stabilization,
        )
    except ConfigurationUnstableError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return ReconcileResponse(
        selections=result.selections,
        changes=_change_models(result.changes),
        iterations=result.iterations,
        converged=result.converged,
    )


@app.post("/configurators/{tenant_id}/apply", response_model=ApplyResponse)
async def apply_selections(tenant_id: str, request: ApplyRequest, store: ConfigStore = Depends(get_store)):
    """Stabilize the selections, then resolve component state and renderer instructions."""
    config = _load_tenant(store, tenant_id)

    try:
        result = stabilize(
            config.options,
            request.selections,
            max_iterations=config.engine.max_reconcile_iterations,
            strict=config.engine.strict_stabilization,
        )
    except ConfigurationUnstableError as e:
        raise HTTPException(status_code=409, detail=str(e))

    components = [
        Component(
            name=c.name,
            original_visible=c.original_visible,
            current_visible=c.current_visible,
            original_color=c.original_color,
            current_color=c.current_color,
            supports_color=c.supports_color,
        )
        for c in request.components
    ]
    states = apply_configuration(components, config.options, result.selections)
    instructions = build_instructions(components, states)

    return ApplyResponse(
        selections=result.selections,
        changes=_change_models(result.changes),
        converged=result.converged,
        states=[ComponentStateModel(**s.to_dict()) for s in states],
        instructions=[ComponentInstructionModel(**i.to_dict()) for i in instructions],
    )


@app.post("/configurators/{tenant_id}/select", response_model=ReconcileResponse)
async def select_option_value(tenant_id: str, request: SelectValueRequest, store: ConfigStore = Depends(get_store)):
    """Apply one user choice and return the stabilized selection map."""
    config = _load_tenant(store, tenant_id)

    option = config.get_option(request.option_id)
    if option is None or option.find_value(request.value_id) is None:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown option/value '{request.option_id}'/'{request.value_id}' for tenant '{tenant_id}'",
        )

    try:
        result = select_value(
            config.options,
            request.selections,
            request.option_id,
            request.value_id,
            max_iterations=config.engine.max_reconcile_iterations,
            strict=config.engine.strict_stabilization,
        )
    except ConfigurationUnstableError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return ReconcileResponse(
        selections=result.selections,
        changes=_change_models(result.changes),
        iterations=result.iterations,
        converged=result.converged,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
