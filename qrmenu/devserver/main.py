"""
Local order service for development and tests.

Serves the order service contract the client consumes, backed by an
in-memory OrderStore. Run it with:

    uvicorn qrmenu.devserver.main:app --reload --port 8000

The status machine is enforced here too (409 on an illegal transition), so
the client's local guard is never the only check.
"""

import argparse
import io
import zipfile
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import qrcode
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field

from qrmenu.config import Settings, get_settings
from qrmenu.errors import StateError
from qrmenu.models import NewOrder, OrderStatus, check_transition
from qrmenu.utils.time_utils import parse_timestamp

from .storage import InMemoryOrderStore, OrderStore

API_PREFIX = "/api/qr-menu"


# ---------- Pydantic models ----------
class UpdateStatusRequest(BaseModel):
    status: OrderStatus


class ConfigureTablesRequest(BaseModel):
    total_tables: int = Field(ge=1, le=100)


# ---------- Dependencies / helpers ----------
def get_storage(request: Request) -> OrderStore:
    return request.app.state.storage


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _table_url(settings: Settings, token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/menu?{settings.credential_param}={token}"


def _qr_png(url: str) -> bytes:
    buf = io.BytesIO()
    qrcode.make(url).save(buf)
    return buf.getvalue()


def _robot_logs_summary(orders: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Derive the dashboard metrics that can be computed from orders alone."""
    now = datetime.now(timezone.utc)
    hourly = [0] * 24
    last_hour = 0
    delivered_today = 0
    for order in orders:
        try:
            ts = parse_timestamp(order.get("timestamp"))
        except ValueError:
            ts = None
        if ts is None:
            continue
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        if ts.date() == now.date():
            hourly[ts.hour] += 1
            if order.get("status") == OrderStatus.DELIVERED.value:
                delivered_today += 1
        if now - ts <= timedelta(hours=1):
            last_hour += 1

    dispatched = [o for o in orders if o.get("status") in (OrderStatus.READY.value, OrderStatus.DELIVERED.value)]
    delivered = [o for o in dispatched if o.get("status") == OrderStatus.DELIVERED.value]
    success_rate = round(100.0 * len(delivered) / len(dispatched), 1) if dispatched else 0

    return {
        "ordersPerHour": last_hour,
        "tripsPerDay": delivered_today,
        "successRate": success_rate,
        "peakBusyHour": max(range(24), key=lambda h: hourly[h]) if any(hourly) else 0,
        "hourlyOrders": [{"hour": h, "orders": c} for h, c in enumerate(hourly)],
        "dailyTrips": [],
        "errorLogs": [],
    }


router = APIRouter(prefix=API_PREFIX)


# ---------- Table credentials ----------
@router.get("/table/pin/{pin}", summary="Resolve a 4-digit table PIN")
async def table_by_pin(pin: str, storage: OrderStore = Depends(get_storage)):
    table = storage.table_by_pin(pin)
    if table is None:
        raise HTTPException(status_code=404, detail="PIN not found")
    return {"table_number": table["table_number"]}


@router.get("/table/{token}", summary="Resolve a QR table token")
async def table_by_token(token: str, storage: OrderStore = Depends(get_storage)):
    table = storage.table_by_token(token)
    if table is None:
        raise HTTPException(status_code=404, detail="Invalid token")
    return {"table_number": table["table_number"]}


# ---------- Orders ----------
@router.get("/orders/ready", summary="Orders waiting for delivery")
async def ready_orders(storage: OrderStore = Depends(get_storage)):
    return [
        {"table_number": o["table_number"], "order_id": o["order_id"]}
        for o in storage.get_orders(status=OrderStatus.READY.value)
    ]


@router.get("/orders", summary="List orders (optionally by status and table)")
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    table: Optional[str] = Query(None),
    storage: OrderStore = Depends(get_storage),
):
    return storage.get_orders(status=status.value if status else None, table_number=table)


@router.post("/orders", summary="Create an order")
async def create_order(payload: NewOrder, storage: OrderStore = Depends(get_storage)):
    # NewOrder rejects (422) a non-pending status or a total that disagrees with the items
    order_id = storage.add_order(payload.model_dump(mode="json"))
    return {"order_id": order_id}


@router.patch("/orders/{order_id}", summary="Advance an order's status")
async def update_order(order_id: str, payload: UpdateStatusRequest, storage: OrderStore = Depends(get_storage)):
    order = storage.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    try:
        check_transition(OrderStatus(order["status"]), payload.status)
    except StateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return storage.update_order_status(order_id, payload.status.value)


# ---------- Admin: tables & QR codes ----------
@router.get("/admin/tables", summary="List provisioned tables")
async def admin_list_tables(
    storage: OrderStore = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    return {"tables": [{**t, "url": _table_url(settings, t["token"])} for t in storage.list_tables()]}


@router.post("/admin/tables/configure", summary="Provision N tables")
async def admin_configure_tables(payload: ConfigureTablesRequest, storage: OrderStore = Depends(get_storage)):
    tables = storage.configure_tables(payload.total_tables)
    return {"status": "ok", "total_tables": len(tables)}


@router.get("/admin/qr-codes", summary="QR code metadata for every table")
async def admin_qr_codes(
    storage: OrderStore = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    tables = storage.list_tables()
    return {
        "total": len(tables),
        "tables": [
            {
                "table_number": t["table_number"],
                "pin": t["pin"],
                "url": _table_url(settings, t["token"]),
                "filename": f"table_{t['table_number']}.png",
            }
            for t in tables
        ],
    }


@router.get("/admin/tables/{table_number}/qr", summary="Download one table's QR code")
async def admin_table_qr(
    table_number: int,
    storage: OrderStore = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    table = next((t for t in storage.list_tables() if t["table_number"] == table_number), None)
    if table is None:
        raise HTTPException(status_code=404, detail="Table not found")
    return Response(
        content=_qr_png(_table_url(settings, table["token"])),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="table_{table_number}.png"'},
    )


@router.get("/admin/qr-codes/download", summary="Download all QR codes as ZIP")
async def admin_all_qr(
    storage: OrderStore = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as archive:
        for t in storage.list_tables():
            archive.writestr(f"table_{t['table_number']}.png", _qr_png(_table_url(settings, t["token"])))
    return Response(
        content=buf.getvalue(),
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="table_qr_codes.zip"'},
    )


@router.get("/admin/robot-logs/dashboard", summary="Delivery dashboard metrics")
async def admin_robot_logs(storage: OrderStore = Depends(get_storage)):
    return _robot_logs_summary(storage.get_orders())


def create_app(storage: Optional[OrderStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    app = FastAPI(title="QR Menu Order Service (local)")

    # Allow CORS for local dev (the frontend runs on another port)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.storage = storage if storage is not None else InMemoryOrderStore()
    app.state.settings = settings or get_settings()
    app.include_router(router)
    return app


app = create_app()


def main(argv: Optional[List[str]] = None) -> None:
    """Run the local order service with uvicorn."""
    parser = argparse.ArgumentParser(description="Local QR menu order service")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--tables", type=int, default=0, help="provision this many tables on startup")
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args(argv)

    if args.tables:
        app.state.storage.configure_tables(args.tables)
    if args.reload:
        # reload needs an import string; provisioned tables are not kept across reloads
        uvicorn.run("qrmenu.devserver.main:app", host=args.host, port=args.port, reload=True)
    else:
        uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
