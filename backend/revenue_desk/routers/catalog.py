"""
Catalog Router — global strategy parameters (weights) and strategy templates.

Readable by every logged-in user; maintained by admins.
"""

import logging
from fastapi import APIRouter, Depends

from revenue_desk.auth import get_current_user, get_storage, require_admin
from revenue_desk.errors import NotFound
from revenue_desk.schemas import (
    StrategyParameterCreate, StrategyParameterRead, StrategyParameterUpdate,
    StrategyTemplateCreate, StrategyTemplateRead, StrategyTemplateUpdate,
    UserPublic,
)
from revenue_desk.storage.base import Storage

logger = logging.getLogger(__name__)

parameters_router = APIRouter()
templates_router = APIRouter()


# ── Strategy parameters ───────────────────────────────────────────────

@parameters_router.get("", response_model=list[StrategyParameterRead])
async def list_parameters(
    _: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_all_strategy_parameters()


@parameters_router.get("/{param_id}", response_model=StrategyParameterRead)
async def get_parameter(
    param_id: int,
    _: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    param = await storage.get_strategy_parameter(param_id)
    if param is None:
        raise NotFound("Strategy parameter not found")
    return param


@parameters_router.post("", response_model=StrategyParameterRead, status_code=201)
async def create_parameter(
    payload: StrategyParameterCreate,
    admin: UserPublic = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    param = await storage.create_strategy_parameter(payload)
    logger.info(f"Admin {admin.id} created strategy parameter {param.param_key}")
    return param


@parameters_router.patch("/{param_id}", response_model=StrategyParameterRead)
async def update_parameter(
    param_id: int,
    payload: StrategyParameterUpdate,
    admin: UserPublic = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    param = await storage.update_strategy_parameter(param_id, payload)
    logger.info(f"Admin {admin.id} updated strategy parameter {param.param_key}")
    return param


@parameters_router.delete("/{param_id}")
async def delete_parameter(
    param_id: int,
    _: UserPublic = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    await storage.delete_strategy_parameter(param_id)
    return {"deleted": True}


# ── Strategy templates ────────────────────────────────────────────────

@templates_router.get("", response_model=list[StrategyTemplateRead])
async def list_templates(
    _: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_all_strategy_templates()


@templates_router.get("/{template_id}", response_model=StrategyTemplateRead)
async def get_template(
    template_id: int,
    _: UserPublic = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    template = await storage.get_strategy_template(template_id)
    if template is None:
        raise NotFound("Strategy template not found")
    return template


@templates_router.post("", response_model=StrategyTemplateRead, status_code=201)
async def create_template(
    payload: StrategyTemplateCreate,
    _: UserPublic = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_strategy_template(payload)


@templates_router.patch("/{template_id}", response_model=StrategyTemplateRead)
async def update_template(
    template_id: int,
    payload: StrategyTemplateUpdate,
    _: UserPublic = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    return await storage.update_strategy_template(template_id, payload)


@templates_router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    _: UserPublic = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    await storage.delete_strategy_template(template_id)
    return {"deleted": True}
