"""
FastAPI application factory for CoinSensei identity API.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping

from fastapi import FastAPI

from apps.api.common import register_api_error_handlers
from apps.api.wiring.modules import build_identity_api_module

log = logging.getLogger(__name__)


def create_app(*, environ: Mapping[str, str] | None = None) -> FastAPI:
    """
    Build FastAPI app with the identity second-factor module wired at startup.

    Related: apps.api.wiring.modules.identity,
      coinsensei.contexts.identity.adapters.inbound.api.routes.two_factor_gateway,
      coinsensei.platform.config.auth_flow

    Args:
        environ: Optional environment mapping override.
    Returns:
        FastAPI: Application instance with registered routers.
    Assumptions:
        Module wiring performs fail-fast validation before first request.
    Raises:
        FileNotFoundError: If auth flow config path is missing.
        ValueError: If identity runtime settings are invalid.
    Side Effects:
        Reads auth flow YAML and validates identity runtime settings.
    """
    effective_environ = os.environ if environ is None else environ

    app = FastAPI(
        title="CoinSensei API",
        version="1.0.0",
    )
    register_api_error_handlers(app=app)
    identity_module = build_identity_api_module(environ=effective_environ)
    app.include_router(identity_module.router)
    app.state.identity_module = identity_module
    log.info("api application created")
    return app
