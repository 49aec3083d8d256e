"""Starlette ASGI application serving the definition browser API."""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..definition.store import DefinitionStore
from ..exceptions import DefinitionNotFoundError, PersistenceError
from ..modules import ModuleStore
from .loader import DefinitionLoader
from .serializers import AtlasSerializer

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _flag(request: Request, name: str) -> bool:
    return request.query_params.get(name, "").lower() in _TRUE_VALUES


def _int_param(request: Request, name: str, default: int) -> int:
    try:
        return int(request.query_params.get(name, default))
    except ValueError:
        return default


def create_app(
    store: DefinitionStore,
    module_store: ModuleStore,
    loader: Optional[DefinitionLoader] = None,
    per_page: int = 100,
) -> Starlette:
    """Build the Starlette application wired to *store*.

    Args:
        store: Definitions to browse; may still be filling up
        module_store: Persisted module classification, updated by POSTs
        loader: Background loader reported by the initialization status
        per_page: Default page size of the definition listing
    """
    serializer = AtlasSerializer(store, module_store)

    async def api_definitions(request: Request) -> JSONResponse:
        data = serializer.serialize_definition_list(
            page=_int_param(request, "page", 1),
            per=_int_param(request, "per", per_page),
            title=request.query_params.get("title", ""),
            source=request.query_params.get("source", ""),
            definition_group=request.query_params.get("definition_group", ""),
        )
        return JSONResponse(data)

    async def api_definition(request: Request) -> JSONResponse:
        """Render a combination of definitions. GET /api/definitions/{bit_id}.json"""
        bit_id = request.path_params["bit_id"]
        try:
            data = serializer.serialize_combined_definition(
                bit_id,
                compound=_flag(request, "compound"),
                concentrate=_flag(request, "concentrate"),
                only_module=_flag(request, "only_module"),
            )
        except DefinitionNotFoundError as e:
            return JSONResponse(e.to_dict(), status_code=404)
        return JSONResponse(data)

    async def api_initialization_status(request: Request) -> JSONResponse:
        if loader is None:
            return JSONResponse({"total": len(store), "loaded": len(store)})
        return JSONResponse({"total": loader.total, "loaded": loader.loaded})

    async def api_pid(request: Request) -> JSONResponse:
        return JSONResponse({"pid": os.getpid()})

    async def api_sources(request: Request) -> JSONResponse:
        return JSONResponse(serializer.serialize_sources())

    async def api_source(request: Request) -> JSONResponse:
        source_name = request.path_params["source_name"]
        data = serializer.serialize_source(source_name)
        if data is None:
            return JSONResponse({"error": f"Source not found: {source_name}"}, status_code=404)
        return JSONResponse(data)

    async def api_source_modules(request: Request) -> JSONResponse:
        """Replace the module path of a source. POST /api/sources/{name}/modules.json"""
        source_name = request.path_params["source_name"]
        if source_name not in serializer.source_names():
            return JSONResponse({"error": f"Source not found: {source_name}"}, status_code=404)

        try:
            body = await request.json()
        except json.JSONDecodeError:
            return JSONResponse({"error": "Request body must be JSON"}, status_code=400)

        modules = body.get("modules") if isinstance(body, dict) else None
        if not isinstance(modules, list) or not all(isinstance(m, str) for m in modules):
            return JSONResponse(
                {"error": "'modules' must be a list of strings"}, status_code=400
            )

        module_store.set(source_name, modules)
        try:
            module_store.flush()
        except PersistenceError as e:
            logger.error("Could not save module store: %s", e)
            return JSONResponse(e.to_dict(), status_code=500)

        logger.info("Classified %s as %s", source_name, modules)
        return JSONResponse({})

    async def api_modules(request: Request) -> JSONResponse:
        return JSONResponse(serializer.serialize_modules())

    async def api_module(request: Request) -> JSONResponse:
        module_path = request.path_params["module_path"]
        module_names = [name for name in module_path.split("/") if name]
        data = serializer.serialize_module(module_names) if module_names else None
        if data is None:
            return JSONResponse({"error": f"Module not found: {module_path}"}, status_code=404)
        return JSONResponse(data)

    routes = [
        Route("/api/definitions.json", api_definitions),
        Route("/api/definitions/{bit_id:int}.json", api_definition),
        Route("/api/initialization_status.json", api_initialization_status),
        Route("/api/pid.json", api_pid),
        Route("/api/sources.json", api_sources),
        Route(
            "/api/sources/{source_name:path}/modules.json",
            api_source_modules,
            methods=["POST"],
        ),
        Route("/api/sources/{source_name:path}.json", api_source),
        Route("/api/modules.json", api_modules),
        Route("/api/modules/{module_path:path}.json", api_module),
    ]

    return Starlette(routes=routes)
