"""Command-line front end for the EV ownership ledger.

Usage
-----
::

    evledger login --email me@example.com --password secret
    evledger vehicle add --make Tesla --model "Model 3" --year 2023 \\
        --battery-kwh 60 --purchase-date 2023-05-01
    evledger log charging <VEHICLE_ID> --start-soc 20 --end-soc 80 --charger "Level 2" --cost 10.50
    evledger stats
    evledger export ev_companion_data.xlsx
    evledger recommend

Data lives in ``~/.evledger`` unless ``--data-dir`` or ``EVLEDGER_DATA_DIR``
is set.
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import logging
import mimetypes
import sys
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from evledger._normalize import prune_blank, safe_str
from evledger.analytics import build_report, summarize, vehicle_logbook
from evledger.auth import LoginGate
from evledger.config import EvLedgerConfig
from evledger.export import write_workbook
from evledger.exceptions import EvLedgerError, ExportError, InsufficientDataError, LedgerError, LoginError
from evledger.ledger import Ledger
from evledger.models.events import ChargerType, Event, EventKind, FaultType, event_date, parse_event
from evledger.models.vehicle import Vehicle, VehicleType
from evledger.persistence import FileBackend, SnapshotStore
from evledger.recommendations import RecommendationClient

_logger = logging.getLogger(__name__)


class _App:
    """Wires config, storage and the ledger together for one CLI invocation."""

    def __init__(self, config: EvLedgerConfig) -> None:
        self.config = config
        self.backend = FileBackend(config.data_dir)
        self.gate = LoginGate(self.backend)
        self._ledger: Ledger | None = None

    @property
    def ledger(self) -> Ledger:
        if self._ledger is None:
            self._ledger = Ledger.open(SnapshotStore(self.backend, self.config.snapshot_key))
        return self._ledger


def _now() -> datetime:
    return datetime.now(UTC)


def _fmt_number(value: float) -> str:
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def _describe_event(event: Event) -> str:
    when = event_date(event).strftime("%Y-%m-%d %H:%M")
    return f"{event.id}  {when}  {event.type}"


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


def _cmd_login(app: _App, args: argparse.Namespace) -> int:
    app.gate.login(args.email, args.password)
    print("Logged in.")
    return 0


def _cmd_logout(app: _App, args: argparse.Namespace) -> int:
    app.gate.logout()
    print("Logged out.")
    return 0


def _vehicle_fields(args: argparse.Namespace) -> dict[str, Any]:
    return prune_blank(
        {
            "make": args.make,
            "model": args.model,
            "variant": args.variant,
            "vehicle_type": args.vehicle_type,
            "year": args.year,
            "battery_capacity_kwh": args.battery_kwh,
            "vin": args.vin,
            "purchase_date": args.purchase_date,
            "initial_odometer": args.odometer,
            "initial_notes": args.notes,
        }
    )


def _cmd_vehicle_add(app: _App, args: argparse.Namespace) -> int:
    fields = _vehicle_fields(args)
    fields.setdefault("purchase_date", _now().date())
    vehicle = Vehicle.model_validate(fields)
    app.ledger.add_vehicle(vehicle)
    print(vehicle.id)
    return 0


def _cmd_vehicle_update(app: _App, args: argparse.Namespace) -> int:
    current = app.ledger.state.get_vehicle(args.vehicle_id)
    if current is None:
        print(f"error: no vehicle {args.vehicle_id}", file=sys.stderr)
        return 1
    merged = current.model_dump() | _vehicle_fields(args)
    app.ledger.update_vehicle(Vehicle.model_validate(merged))
    print(f"Updated {args.vehicle_id}")
    return 0


def _cmd_vehicle_list(app: _App, args: argparse.Namespace) -> int:
    state = app.ledger.state
    if not state.vehicles:
        print("No vehicles registered.")
        return 0
    for vehicle in state.vehicles:
        count = len(state.events_for(vehicle.id))
        print(
            f"{vehicle.id}  {vehicle.display_name}  {vehicle.vehicle_type}  "
            f"{_fmt_number(vehicle.battery_capacity_kwh)} kWh  {count} log(s)"
        )
    return 0


def _cmd_vehicle_delete(app: _App, args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to delete without --yes (this also deletes all its logs).", file=sys.stderr)
        return 1
    app.ledger.delete_vehicle(args.vehicle_id)
    print(f"Deleted {args.vehicle_id}")
    return 0


def _read_image(path: str) -> str:
    file_path = Path(path)
    mime = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
    encoded = base64.b64encode(file_path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def _cmd_vehicle_media(app: _App, args: argparse.Namespace) -> int:
    vehicle = app.ledger.state.get_vehicle(args.vehicle_id)
    if vehicle is None:
        print(f"error: no vehicle {args.vehicle_id}", file=sys.stderr)
        return 1
    if args.media_action == "add-video":
        vehicle = vehicle.with_video(args.url)
    elif args.media_action == "add-review":
        vehicle = vehicle.with_review(args.title, args.url)
    elif args.media_action == "add-social":
        vehicle = vehicle.with_social(args.platform, args.url)
    elif args.media_action == "add-image":
        try:
            vehicle = vehicle.with_image(_read_image(args.path))
        except OSError as exc:
            print(f"error: could not read image: {exc}", file=sys.stderr)
            return 1
    else:
        vehicle = vehicle.without_media(args.media_id)
    app.ledger.update_vehicle(vehicle)
    print(f"Updated {args.vehicle_id}")
    return 0


def _event_fields(args: argparse.Namespace) -> dict[str, Any]:
    kind = EventKind(args.kind)
    base: dict[str, Any] = {"type": kind.value, "vehicle_id": args.vehicle_id, "notes": getattr(args, "notes", None)}
    if kind in (EventKind.CHARGING, EventKind.TRIP):
        base["start_time"] = args.start or _now()
        base["end_time"] = args.end or base["start_time"]
    if kind is EventKind.CHARGING:
        base |= {
            "start_soc_percent": args.start_soc,
            "end_soc_percent": args.end_soc,
            "charger_type": args.charger,
            "cost": args.cost,
            "location": args.location,
        }
    elif kind is EventKind.TRIP:
        base |= {"start_odometer": args.start_odometer, "end_odometer": args.end_odometer, "purpose": args.purpose}
    elif kind is EventKind.SERVICE:
        base |= {
            "service_date": args.date or _now(),
            "odometer": args.odometer,
            "description": args.description,
            "cost": args.cost,
            "performed_by": args.performed_by,
        }
    elif kind is EventKind.PURCHASE_ACCESSORIES:
        size = args.size or (None, None, None)
        base |= {
            "purchase_date": args.date or _now(),
            "accessory_name": args.name,
            "brand": args.brand,
            "accessory_type": args.accessory_type,
            "cost": args.cost,
            "size_l": size[0],
            "size_w": size[1],
            "size_h": size[2],
            "weight": args.weight,
            "purpose": args.purpose,
            "uses_power": args.uses_power,
            "avg_power_draw_watts": args.power_draw,
            "could_void_warranty": args.voids_warranty,
        }
    elif kind is EventKind.FAULT:
        base |= {
            "fault_date": args.date or _now(),
            "odometer": args.odometer,
            "fault_type": args.fault_type,
            "description": args.description,
            "resolution": args.resolution,
        }
    elif kind is EventKind.SATISFACTION:
        base |= {"log_date": args.date or _now(), "rating": args.rating, "comments": args.comments}
    return prune_blank(base)


def _cmd_log_add(app: _App, args: argparse.Namespace) -> int:
    event = parse_event(_event_fields(args))
    app.ledger.add_event(event)
    print(event.id)
    return 0


def _cmd_log_delete(app: _App, args: argparse.Namespace) -> int:
    app.ledger.delete_event(args.event_id)
    print(f"Deleted {args.event_id}")
    return 0


def _cmd_logbook(app: _App, args: argparse.Namespace) -> int:
    state = app.ledger.state
    vehicle = state.get_vehicle(args.vehicle_id) if args.vehicle_id else next(iter(state.vehicles), None)
    if vehicle is None:
        print("No vehicle found. Add one with 'evledger vehicle add'.")
        return 1 if args.vehicle_id else 0
    print(f"Logbook for {vehicle.display_name}")
    events = vehicle_logbook(state, vehicle.id)
    if not events:
        print("No logs recorded for this vehicle yet.")
    for event in events:
        print(_describe_event(event))
    return 0


def _cmd_stats(app: _App, args: argparse.Namespace) -> int:
    summary = summarize(app.ledger.state)
    print(f"Vehicles:              {summary.vehicle_count}")
    print(f"Logbook entries:       {summary.event_count}")
    print(f"Total distance (mi):   {_fmt_number(summary.total_distance)}")
    print(f"Total spent ($):       {summary.total_cost:.2f}")
    print(f"Charging sessions:     {summary.charging_sessions}")
    for charger in ChargerType:
        print(f"  {charger.value + ':':<20} {summary.charger_types.get(charger, 0)}")
    if summary.average_satisfaction is not None:
        print(f"Average satisfaction:  {summary.average_satisfaction:.1f}/5")
    return 0


def _cmd_charts(app: _App, args: argparse.Namespace) -> int:
    report = build_report(app.ledger.state)
    if not report.enough_data:
        print("Not enough data. Log more events to see your analytics.")
        return 0
    print("Energy added & cost")
    for point in report.charging:
        print(f"  {point.day.isoformat()}  {point.energy_added_kwh:.1f} kWh  ${point.cost:.2f}")
    print("Distance per trip")
    for trip in report.trips:
        print(f"  {trip.day.isoformat()}  {_fmt_number(trip.distance)} mi")
    print("Charger type distribution")
    for charger, count in report.charger_types.items():
        print(f"  {charger.value}: {count}")
    return 0


def _cmd_export(app: _App, args: argparse.Namespace) -> int:
    path = Path(args.path or app.config.export_filename)
    try:
        write_workbook(app.ledger.state, path)
    except ExportError as exc:
        print(f"error: export failed: {exc}", file=sys.stderr)
        return 1
    print(f"Exported to {path}")
    return 0


async def _recommend(app: _App) -> int:
    async with RecommendationClient(app.config) as client:
        recommendations = await client.recommend(app.ledger.state)
    for rec in recommendations:
        print(f"## {rec.title}")
        print(rec.recommendation)
        print(f"  ({rec.rationale})")
        print()
    return 1 if any(rec.is_error for rec in recommendations) else 0


def _cmd_recommend(app: _App, args: argparse.Namespace) -> int:
    return asyncio.run(_recommend(app))


def _cmd_reset(app: _App, args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to delete all data without --yes.", file=sys.stderr)
        return 1
    app.ledger.clear()
    print("All data deleted.")
    return 0


# ----------------------------------------------------------------------
# Parser
# ----------------------------------------------------------------------


def _add_vehicle_options(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument("--make", required=required)
    parser.add_argument("--model", required=required)
    parser.add_argument("--variant")
    parser.add_argument("--type", dest="vehicle_type", choices=[t.value for t in VehicleType])
    parser.add_argument("--year", type=int, required=required)
    parser.add_argument("--battery-kwh", type=float, required=required)
    parser.add_argument("--vin")
    parser.add_argument("--purchase-date", help="YYYY-MM-DD (default: today)")
    parser.add_argument("--odometer", type=float, help="Odometer at purchase")
    parser.add_argument("--notes")


def _add_log_parsers(log_sub: argparse._SubParsersAction) -> None:
    def kind_parser(name: str, kind: EventKind, help_text: str, *, notes: bool = True) -> argparse.ArgumentParser:
        parser = log_sub.add_parser(name, help=help_text)
        parser.add_argument("vehicle_id")
        if notes:
            parser.add_argument("--notes")
        parser.set_defaults(func=_cmd_log_add, kind=kind.value)
        return parser

    charging = kind_parser("charging", EventKind.CHARGING, "Log a charging session")
    charging.add_argument("--start", help="Start time (ISO 8601, default: now)")
    charging.add_argument("--end", help="End time (ISO 8601, default: start)")
    charging.add_argument("--start-soc", type=float, required=True)
    charging.add_argument("--end-soc", type=float, required=True)
    charging.add_argument("--charger", choices=[c.value for c in ChargerType], default=ChargerType.LEVEL_2.value)
    charging.add_argument("--cost", type=float)
    charging.add_argument("--location")

    trip = kind_parser("trip", EventKind.TRIP, "Log a trip")
    trip.add_argument("--start", help="Start time (ISO 8601, default: now)")
    trip.add_argument("--end", help="End time (ISO 8601, default: start)")
    trip.add_argument("--start-odometer", type=float, required=True)
    trip.add_argument("--end-odometer", type=float, required=True)
    trip.add_argument("--purpose")

    service = kind_parser("service", EventKind.SERVICE, "Log a service visit")
    service.add_argument("--date")
    service.add_argument("--odometer", type=float, required=True)
    service.add_argument("--description", required=True)
    service.add_argument("--cost", type=float)
    service.add_argument("--performed-by")

    accessory = kind_parser("accessory", EventKind.PURCHASE_ACCESSORIES, "Log an accessory purchase")
    accessory.add_argument("--date")
    accessory.add_argument("--name", required=True)
    accessory.add_argument("--brand")
    accessory.add_argument("--type", dest="accessory_type")
    accessory.add_argument("--cost", type=float)
    accessory.add_argument("--size", type=float, nargs=3, metavar=("L", "W", "H"), help="Dimensions in inches")
    accessory.add_argument("--weight", type=float, help="Weight in lbs")
    accessory.add_argument("--purpose")
    accessory.add_argument("--uses-power", action="store_true")
    accessory.add_argument("--power-draw", type=float, help="Average draw in watts")
    accessory.add_argument("--voids-warranty", action="store_true")

    fault = kind_parser("fault", EventKind.FAULT, "Log a fault")
    fault.add_argument("--date")
    fault.add_argument("--odometer", type=float, required=True)
    fault.add_argument("--fault-type", choices=[f.value for f in FaultType], default=FaultType.OTHER.value)
    fault.add_argument("--description", required=True)
    fault.add_argument("--resolution")

    satisfaction = kind_parser("satisfaction", EventKind.SATISFACTION, "Log a satisfaction rating", notes=False)
    satisfaction.add_argument("--date")
    satisfaction.add_argument("--rating", type=int, choices=range(1, 6), default=3)
    satisfaction.add_argument("--comments")

    delete = log_sub.add_parser("delete", help="Delete a log entry")
    delete.add_argument("event_id")
    delete.set_defaults(func=_cmd_log_delete)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="evledger", description="Personal EV ownership logbook.")
    parser.add_argument("--data-dir", help="Storage directory (default: ~/.evledger)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Unlock the logbook")
    login.add_argument("--email", required=True)
    login.add_argument("--password", required=True)
    login.set_defaults(func=_cmd_login, public=True)

    logout = sub.add_parser("logout", help="Lock the logbook")
    logout.set_defaults(func=_cmd_logout, public=True)

    vehicle = sub.add_parser("vehicle", help="Manage vehicles")
    vehicle_sub = vehicle.add_subparsers(dest="vehicle_command", required=True)

    add = vehicle_sub.add_parser("add", help="Register a vehicle")
    _add_vehicle_options(add, required=True)
    add.set_defaults(func=_cmd_vehicle_add)

    update = vehicle_sub.add_parser("update", help="Edit a vehicle")
    update.add_argument("vehicle_id")
    _add_vehicle_options(update, required=False)
    update.set_defaults(func=_cmd_vehicle_update)

    vehicle_sub.add_parser("list", help="List vehicles").set_defaults(func=_cmd_vehicle_list)

    delete = vehicle_sub.add_parser("delete", help="Delete a vehicle and its logs")
    delete.add_argument("vehicle_id")
    delete.add_argument("--yes", action="store_true")
    delete.set_defaults(func=_cmd_vehicle_delete)

    media = vehicle_sub.add_parser("media", help="Manage pictures and links")
    media_sub = media.add_subparsers(dest="media_action", required=True)
    add_video = media_sub.add_parser("add-video")
    add_video.add_argument("vehicle_id")
    add_video.add_argument("url")
    add_review = media_sub.add_parser("add-review")
    add_review.add_argument("vehicle_id")
    add_review.add_argument("title")
    add_review.add_argument("url")
    add_social = media_sub.add_parser("add-social")
    add_social.add_argument("vehicle_id")
    add_social.add_argument("platform")
    add_social.add_argument("url")
    add_image = media_sub.add_parser("add-image")
    add_image.add_argument("vehicle_id")
    add_image.add_argument("path")
    remove = media_sub.add_parser("remove")
    remove.add_argument("vehicle_id")
    remove.add_argument("media_id")
    media.set_defaults(func=_cmd_vehicle_media)

    log = sub.add_parser("log", help="Record or delete logbook events")
    _add_log_parsers(log.add_subparsers(dest="log_command", required=True))

    logbook = sub.add_parser("logbook", help="Show a vehicle's logbook, newest first")
    logbook.add_argument("vehicle_id", nargs="?")
    logbook.set_defaults(func=_cmd_logbook)

    sub.add_parser("stats", help="Show totals").set_defaults(func=_cmd_stats)
    sub.add_parser("charts", help="Show chart series").set_defaults(func=_cmd_charts)

    export = sub.add_parser("export", help="Export to an .xlsx workbook")
    export.add_argument("path", nargs="?")
    export.set_defaults(func=_cmd_export)

    sub.add_parser("recommend", help="Ask the AI service for recommendations").set_defaults(func=_cmd_recommend)

    reset = sub.add_parser("reset", help="Delete all vehicles and logs")
    reset.add_argument("--yes", action="store_true")
    reset.set_defaults(func=_cmd_reset)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if safe_str(args.data_dir):
        overrides["data_dir"] = Path(args.data_dir).expanduser()

    try:
        app = _App(EvLedgerConfig.from_env(**overrides))
        if not getattr(args, "public", False) and not app.gate.is_logged_in:
            print("Not logged in. Run 'evledger login' first.", file=sys.stderr)
            return 1
        func: Callable[[_App, argparse.Namespace], int] = args.func
        return func(app, args)
    except ValidationError as exc:
        print(f"error: invalid input:\n{exc}", file=sys.stderr)
    except (LedgerError, InsufficientDataError, LoginError) as exc:
        print(f"error: {exc}", file=sys.stderr)
    except EvLedgerError as exc:
        _logger.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
