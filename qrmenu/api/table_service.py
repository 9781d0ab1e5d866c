"""
Table endpoints of the order service.

Credential validation (token / PIN) plus the admin provisioning calls the
staff tables page goes through. Provisioning logic lives in the service;
this client only checks obviously bad input before sending.
"""

import logging
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from qrmenu.api.http import ServiceClient, path_segment
from qrmenu.errors import ValidationError
from qrmenu.models import TableInfo, TableNumber

logger = logging.getLogger(__name__)

MAX_TABLES = 100


def _table_number(data: Any) -> TableNumber:
    value = data.get("table_number") if isinstance(data, dict) else None
    if isinstance(value, bool) or not isinstance(value, (int, str)) or value == "":
        raise ServiceClient._malformed("table lookup response")
    return value


class TableServiceClient(ServiceClient):
    """Client for /table/* and /admin/tables* endpoints."""

    async def validate_token(self, token: str) -> TableNumber:
        """Resolve a QR token to a table number."""
        data = await self._get(f"/table/{path_segment(token)}")
        return _table_number(data)

    async def validate_pin(self, pin: str) -> TableNumber:
        """
        Resolve a 4-digit PIN to a table number.

        Raises NotFoundError when the PIN is unknown and TransportError with
        a 5xx status (or no status at all) when the service is unavailable.
        """
        data = await self._get(f"/table/pin/{path_segment(pin)}")
        return _table_number(data)

    # ---------- Admin provisioning ----------

    async def list_tables(self) -> List[TableInfo]:
        data = await self._get("/admin/tables")
        try:
            return [TableInfo.model_validate(t) for t in (data or {}).get("tables", [])]
        except (AttributeError, PydanticValidationError) as exc:
            raise self._malformed("table list", exc)

    async def configure_tables(self, total_tables: int) -> Dict[str, Any]:
        """Provision `total_tables` tables (1..100)."""
        if isinstance(total_tables, bool) or not isinstance(total_tables, int) or not (
            1 <= total_tables <= MAX_TABLES
        ):
            raise ValidationError(
                f"total_tables out of range: {total_tables!r}",
                user_message=f"Please enter a number between 1 and {MAX_TABLES}",
            )
        return await self._post("/admin/tables/configure", {"total_tables": total_tables})

    async def qr_codes_info(self) -> Dict[str, Any]:
        return await self._get("/admin/qr-codes")

    async def download_qr_code(self, table_number: TableNumber) -> bytes:
        """PNG image of one table's QR code."""
        return await self._get_bytes(f"/admin/tables/{path_segment(table_number)}/qr")

    async def download_all_qr_codes(self) -> bytes:
        """ZIP archive with every table's QR code."""
        return await self._get_bytes("/admin/qr-codes/download")


__all__ = ["TableServiceClient", "MAX_TABLES"]
