from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .database import SQLiteAvailabilityGateway


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@dataclass
class Observability:
    gateway: SQLiteAvailabilityGateway

    def snapshot(self, limit: int = 30) -> dict[str, Any]:
        items = self.gateway.recent_activity(limit=limit)
        counts: dict[str, int] = {}
        for item in items:
            counts[item["activity"]] = counts.get(item["activity"], 0) + 1
        return {"items": items, "counts": counts}
