from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from loguru import logger
from urllib.parse import parse_qs

from app.core.config import settings
from app.services.container import Services

router = APIRouter()


def get_services(request: Request) -> Services:
    return request.app.state.services


def parse_skip(extra: str) -> int:
    """Stremio extra segment, e.g. 'skip=20'."""
    values = parse_qs(extra).get("skip") or ["0"]
    try:
        return int(values[0])
    except ValueError:
        return 0


def public_base_url(request: Request) -> str:
    return settings.PUBLIC_URL or str(request.base_url)


@router.get("/manifest.json")
async def manifest(services: Services = Depends(get_services)):
    return services.addon.manifest().model_dump(exclude_none=True)


@router.get("/catalog/{catalog_type}/{catalog_id}.json")
async def catalog(catalog_type: str, catalog_id: str, services: Services = Depends(get_services)):
    metas = services.addon.catalog(catalog_type, catalog_id)
    return {"metas": [m.model_dump(exclude_none=True) for m in metas]}


@router.get("/catalog/{catalog_type}/{catalog_id}/{extra}.json")
async def catalog_with_extra(catalog_type: str, catalog_id: str, extra: str,
                             services: Services = Depends(get_services)):
    metas = services.addon.catalog(catalog_type, catalog_id, skip=parse_skip(extra))
    return {"metas": [m.model_dump(exclude_none=True) for m in metas]}


@router.get("/meta/{meta_type}/{meta_id}.json")
async def meta(meta_type: str, meta_id: str, services: Services = Depends(get_services)):
    result = services.addon.meta(meta_id)
    return {"meta": result.model_dump(exclude_none=True) if result else None}


@router.get("/stream/{stream_type}/{stream_id}.json")
async def stream(stream_type: str, stream_id: str, request: Request, services: Services = Depends(get_services)):
    try:
        streams = await services.addon.streams(stream_id, public_base_url(request))
    except Exception:
        logger.exception(f"Stream handler failed for {stream_id}")
        streams = []
    return {"streams": [s.model_dump(exclude_none=True) for s in streams]}


@router.get("/resolve/{key}")
async def resolve(key: str, services: Services = Depends(get_services)):
    target = await services.addon.resolve(key)
    return RedirectResponse(target, status_code=302)


@router.get("/refresh")
async def refresh(services: Services = Depends(get_services)):
    success = await services.store.refresh()
    return {"success": success, "count": len(services.store.current_entries())}
