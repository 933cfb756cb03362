# scripts/print_slot_grid.py
"""
Print the booking grid for a window of days, straight from the database.

Handy for checking a schedule change without the UI:

    python scripts/print_slot_grid.py --start-date 2025-01-06 --team-id team-a
"""

from __future__ import annotations

import argparse
from datetime import date, datetime, timedelta

from schedule_admin.config import get_settings
from schedule_admin.db.session import SessionLocal, init_db
from schedule_admin.schemas.availability import AvailabilityScope, AvailabilityWindow
from schedule_admin.services import schedule_store
from schedule_admin.services.availability_service import resolve_for_snapshot
from schedule_admin.services.slot_grid_service import build_grid, business_times, grid_dates


def run_once(
    start_date: date,
    days: int,
    product_type_id: str | None = None,
    team_id: str | None = None,
    allow_unavailable: bool = False,
) -> None:
    settings = get_settings()
    init_db()

    db = SessionLocal()
    try:
        window_start = datetime.combine(start_date, datetime.min.time())
        snapshot = schedule_store.load_snapshot(
            db, window_start, window_start + timedelta(days=days)
        )
    finally:
        db.close()

    result = resolve_for_snapshot(
        snapshot,
        AvailabilityWindow(start_date=start_date, days=days),
        AvailabilityScope(team_id=team_id, product_type_id=product_type_id),
        now=datetime.now(),
        allow_unavailable=allow_unavailable,
        business_day_start=settings.BUSINESS_DAY_START,
        business_day_end=settings.BUSINESS_DAY_END,
        default_minimum_days_notice=settings.DEFAULT_MINIMUM_DAYS_NOTICE,
        default_max_displayed_slots=settings.DEFAULT_MAX_DISPLAYED_SLOTS,
    )

    dates = grid_dates(start_date, days)
    grid = build_grid(
        result.slots,
        dates,
        business_times(settings.BUSINESS_DAY_START, settings.BUSINESS_DAY_END),
        allow_unavailable=allow_unavailable,
    )

    print("time  | " + " | ".join(f"{d:>10}" for d in dates))
    for row in grid.rows():
        cells = []
        for cell in row["cells"]:
            marker = "*" if cell["selectable"] else " "
            cells.append(f"{cell['status']:>9}{marker}")
        print(f"{row['time']} | " + " | ".join(cells))

    print(f"\n[print_slot_grid] {result.min_notice_slot_count} slots hidden by minimum notice")
    for warning in result.warnings:
        print(f"[print_slot_grid] warning: {warning}")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=date.today(),
        help="First day of the grid (YYYY-MM-DD)",
    )
    parser.add_argument("--days", type=int, default=get_settings().DEFAULT_WINDOW_DAYS)
    parser.add_argument("--product-type-id", default=None)
    parser.add_argument("--team-id", default=None)
    parser.add_argument(
        "--allow-unavailable",
        action="store_true",
        help="Acceleration mode: mark every slot selectable",
    )
    args = parser.parse_args()
    run_once(
        start_date=args.start_date,
        days=args.days,
        product_type_id=args.product_type_id,
        team_id=args.team_id,
        allow_unavailable=args.allow_unavailable,
    )


if __name__ == "__main__":
    main()
