from __future__ import annotations

import logging

from influence_dashboard.config import settings
from influence_dashboard.database import get_engine, init_db
from influence_dashboard.services.rollups import refresh_rollups
from influence_dashboard.services.store import RelationStore


def main() -> None:
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    # Ensure tables exist (local dev)
    engine = get_engine()
    init_db(engine)

    result = refresh_rollups(RelationStore.from_settings(engine, settings), settings)

    print(
        f"Refreshed rollups for {result.groups} groups: "
        f"{result.jurisdiction_rows} jurisdiction rows, {result.time_series_rows} time-series rows"
    )


if __name__ == "__main__":
    main()
