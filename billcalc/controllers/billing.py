from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from billcalc.configs.billing import BillingConfig, MalformedConfig, schedule_warnings
from billcalc.managers.bill_manager import InvalidUsage
from billcalc.managers.session_manager import BillingSession

router = APIRouter()


class BillRequest(BaseModel):
    usage: float


def get_session(request: Request) -> BillingSession:
    return request.app.state.session


def get_display_places(request: Request) -> int:
    return request.app.state.settings.display_places


def settings_payload(config: BillingConfig) -> Dict[str, Any]:
    payload = config.to_dict()
    payload["warnings"] = schedule_warnings(config)
    return payload


def bill_response(session: BillingSession, usage: float, places: int) -> JSONResponse:
    try:
        result = session.bill(usage)
    except InvalidUsage as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return JSONResponse(result.to_dict(places))


@router.get("/bill")
async def bill_get(
    usage: float = Query(...),
    session: BillingSession = Depends(get_session),
    places: int = Depends(get_display_places),
):
    return bill_response(session, usage, places)


@router.post("/bill")
async def bill_post(
    body: BillRequest,
    session: BillingSession = Depends(get_session),
    places: int = Depends(get_display_places),
):
    return bill_response(session, body.usage, places)


@router.get("/settings")
async def read_settings(session: BillingSession = Depends(get_session)):
    return JSONResponse(settings_payload(session.config))


@router.put("/settings")
async def replace_settings(
    data: Any = Body(...),
    session: BillingSession = Depends(get_session),
):
    """Replace the live config with a complete new one and persist it."""
    try:
        config = BillingConfig.from_dict(data)
    except MalformedConfig as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    session.replace_config(config)
    return JSONResponse(settings_payload(config))


@router.post("/settings/reset")
async def reset_settings(session: BillingSession = Depends(get_session)):
    return JSONResponse(settings_payload(session.reset()))
