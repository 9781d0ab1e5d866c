"""Analytics summary endpoint (delivery robot dashboard)."""

from pydantic import ValidationError as PydanticValidationError

from qrmenu.api.http import ServiceClient
from qrmenu.models import RobotLogsSummary


class AnalyticsServiceClient(ServiceClient):

    async def fetch_robot_logs_summary(self) -> RobotLogsSummary:
        data = await self._get("/admin/robot-logs/dashboard")
        if not isinstance(data, dict):
            raise self._malformed("robot logs summary")
        try:
            return RobotLogsSummary.model_validate(data)
        except PydanticValidationError as exc:
            raise self._malformed("robot logs summary", exc)
