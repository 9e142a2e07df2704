"""Spreadsheet export of the ledger.

:func:`build_sheets` flattens a :class:`LedgerState` into three tables;
:func:`write_workbook` hands them to openpyxl. Building the tables never
touches the ledger, and every writer failure surfaces as
:class:`~evledger.exceptions.ExportError`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from evledger.analytics import charger_type_histogram, charging_session_count, total_cost, total_distance
from evledger.exceptions import ExportError
from evledger.ledger.state import LedgerState
from evledger.models.events import (
    AccessoryPurchaseEvent,
    ChargerType,
    ChargingEvent,
    Event,
    FaultEvent,
    SatisfactionEvent,
    ServiceEvent,
    TripEvent,
    event_date,
    event_notes,
)
from evledger.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)

VEHICLE_SHEET = "My EV Details"
LOGBOOK_SHEET = "Logbook"
SUMMARY_SHEET = "Analytics Summary"

Row = dict[str, Any]


@dataclass(frozen=True)
class Sheet:
    """A named table of rows. Columns are the union of row keys in first-seen order."""

    title: str
    rows: list[Row] = field(default_factory=list)

    @property
    def columns(self) -> list[str]:
        seen: dict[str, None] = {}
        for row in self.rows:
            for key in row:
                seen.setdefault(key, None)
        return list(seen)

    def matrix(self) -> list[list[Any]]:
        """Header row followed by one list per row; missing cells are ``None``."""
        columns = self.columns
        return [columns, *([row.get(col) for col in columns] for row in self.rows)]


def format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")


# ----------------------------------------------------------------------
# Vehicle roster
# ----------------------------------------------------------------------


def vehicle_row(vehicle: Vehicle) -> Row:
    row: Row = vehicle.model_dump(mode="json", by_alias=True)
    row["images"] = len(vehicle.images)
    row["videos"] = ", ".join(v.url for v in vehicle.videos)
    row["reviews"] = ", ".join(f"{r.title}: {r.url}" for r in vehicle.reviews)
    row["socials"] = ", ".join(f"{s.platform}: {s.url}" for s in vehicle.socials)
    return row


# ----------------------------------------------------------------------
# Logbook
# ----------------------------------------------------------------------


def _kind_columns(event: Event) -> Row:
    match event:
        case ChargingEvent():
            return {
                "Start Time": format_timestamp(event.start_time),
                "End Time": format_timestamp(event.end_time),
                "Start SoC (%)": event.start_soc_percent,
                "End SoC (%)": event.end_soc_percent,
                "Charger Type": str(event.charger_type),
                "Cost ($)": event.cost,
                "Location": event.location,
            }
        case TripEvent():
            return {
                "Start Time": format_timestamp(event.start_time),
                "End Time": format_timestamp(event.end_time),
                "Start Odometer": event.start_odometer,
                "End Odometer": event.end_odometer,
                "Distance (mi)": event.distance,
                "Purpose": event.purpose,
            }
        case ServiceEvent():
            return {
                "Odometer": event.odometer,
                "Description": event.description,
                "Cost ($)": event.cost,
                "Performed By": event.performed_by,
            }
        case AccessoryPurchaseEvent():
            return {
                "Accessory Name": event.accessory_name,
                "Brand": event.brand,
                "Accessory Type": event.accessory_type,
                "Cost ($)": event.cost,
                "Size L (in)": event.size_l,
                "Size W (in)": event.size_w,
                "Size H (in)": event.size_h,
                "Weight (lbs)": event.weight,
                "Purpose": event.purpose,
                "Uses Power": event.uses_power,
                "Avg Power Draw (W)": event.avg_power_draw_watts,
                "Could Void Warranty": event.could_void_warranty,
            }
        case FaultEvent():
            return {
                "Odometer": event.odometer,
                "Fault Type": str(event.fault_type),
                "Description": event.description,
                "Resolution": event.resolution,
            }
        case SatisfactionEvent():
            return {
                "Rating (1-5)": event.rating,
                "Comments": event.comments,
            }
    return {}


def event_row(event: Event) -> Row:
    row: Row = {
        "Log ID": event.id,
        "Vehicle ID": event.vehicle_id,
        "Log Type": event.type,
        "Date": format_timestamp(event_date(event)),
        "Notes": event_notes(event) or "",
    }
    row.update(_kind_columns(event))
    return row


# ----------------------------------------------------------------------
# Summary
# ----------------------------------------------------------------------


def summary_rows(state: LedgerState) -> list[Row]:
    histogram = charger_type_histogram(state)
    return [
        {"Metric": "Total EVs Tracked", "Value": len(state.vehicles)},
        {"Metric": "Total Logbook Entries", "Value": len(state.events)},
        {"Metric": "Total Distance Driven (mi)", "Value": f"{total_distance(state):,.0f}"},
        {"Metric": "Total Spent ($)", "Value": f"{total_cost(state):.2f}"},
        {"Metric": "Total Charging Sessions", "Value": charging_session_count(state)},
        {"Metric": "Level 1 Charges", "Value": histogram.get(ChargerType.LEVEL_1, 0)},
        {"Metric": "Level 2 Charges", "Value": histogram.get(ChargerType.LEVEL_2, 0)},
        {"Metric": "DC Fast Charges", "Value": histogram.get(ChargerType.DC_FAST, 0)},
    ]


def build_sheets(state: LedgerState) -> list[Sheet]:
    """Return the roster, logbook and summary sheets, in workbook order."""
    return [
        Sheet(VEHICLE_SHEET, [vehicle_row(v) for v in state.vehicles]),
        Sheet(LOGBOOK_SHEET, [event_row(e) for e in state.events]),
        Sheet(SUMMARY_SHEET, summary_rows(state)),
    ]


def write_sheets(sheets: Sequence[Sheet], path: Path | str) -> Path:
    """Write *sheets* to an ``.xlsx`` workbook at *path*.

    Raises
    ------
    ExportError
        If openpyxl is unavailable or the workbook cannot be saved.
    """
    target = Path(path)
    try:
        from openpyxl import Workbook
        from openpyxl.utils.exceptions import IllegalCharacterError
    except ImportError as exc:
        raise ExportError("The spreadsheet export library (openpyxl) is not available") from exc

    try:
        workbook = Workbook()
        default_sheet = workbook.active
        for index, sheet in enumerate(sheets):
            worksheet = default_sheet if index == 0 and default_sheet is not None else workbook.create_sheet()
            worksheet.title = sheet.title
            if not sheet.rows:
                continue
            for values in sheet.matrix():
                worksheet.append(values)
        workbook.save(target)
    except (OSError, ValueError, TypeError, IllegalCharacterError) as exc:
        raise ExportError(f"Could not write workbook {target}: {exc}") from exc

    _logger.info("Exported %d sheet(s) to %s", len(sheets), target)
    return target


def write_workbook(state: LedgerState, path: Path | str) -> Path:
    return write_sheets(build_sheets(state), path)
