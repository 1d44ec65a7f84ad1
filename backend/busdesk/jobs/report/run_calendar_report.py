import argparse
import json
import sys
from datetime import MAXYEAR, MINYEAR, date

from busdesk.client.http import configure_logging_if_needed, make_client
from busdesk.client.schedule_service import ScheduleService
from busdesk.core.config import load_config
from busdesk.schedule.format import format_clock, month_title
from busdesk.schedule.timeline import slot_hours_between, slot_label
from busdesk.schedule.utils.time import resolve_tz
from busdesk.view.calendar_view import CalendarView


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date: '{value}'. Expected YYYY-MM-DD.")


def parse_year(value: str) -> int:
    try:
        year = int(value)
    except ValueError:
        year = 0
    if not MINYEAR <= year <= MAXYEAR:
        raise argparse.ArgumentTypeError(f"Invalid year: '{value}'. Expected {MINYEAR}-{MAXYEAR}.")
    return year


def build_report(view: CalendarView, with_day: bool) -> dict:
    counts = {
        d.isoformat(): len(view.index.on_day(d))
        for d in view.month_grid()
        if d is not None and view.has_schedules(d)
    }
    report = {
        "month": month_title(view.current_date),
        "total_schedules": len(view.schedules),
        "days_with_schedules": counts,
        "diagnostics": view.report.as_dict(),
        "error": view.error or None,
    }

    if with_day:
        report["day"] = view.selected_date.isoformat()
        report["schedules"] = [
            f"{format_clock(s.departure, view.tz)} -> {format_clock(s.arrival, view.tz)} "
            f"{s.bus_label} {s.route_label} [{s.status}]"
            for s in view.selected_day_schedules()
        ]
        report["timeline"] = {
            slot_label(hour): [s.bus_label for s in items]
            for hour, items in view.timeline().items()
        }
    return report


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Print a month summary (and optionally a day timeline) of bus schedules")
    p.add_argument("--year", type=parse_year, help="Calendar year (default: current)")
    p.add_argument("--month", type=int, choices=range(1, 13), metavar="1-12", help="Calendar month (default: current)")
    p.add_argument("--date", type=parse_date, help="Day to expand into a timeline (YYYY-MM-DD)")
    args = p.parse_args(argv)

    cfg = load_config()
    configure_logging_if_needed(cfg.log_level)
    tz = resolve_tz(cfg.timezone)

    with make_client(cfg) as client:
        view = CalendarView(
            ScheduleService(cfg, client),
            tz=tz,
            today=args.date,
            slot_hours=slot_hours_between(cfg.slot_start_hour, cfg.slot_end_hour),
        )
        if args.year or args.month:
            view.current_date = date(args.year or view.current_date.year, args.month or view.current_date.month, 1)
            if args.date is None:
                view.selected_date = view.current_date
        view.refresh()

    report = build_report(view, with_day=args.date is not None)
    print(json.dumps(report, indent=2))

    return 1 if view.error else 0


if __name__ == "__main__":
    sys.exit(main())
