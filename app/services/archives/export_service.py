# app/services/archives/export_service.py
"""
Export bundle for one archive.

Builds a set of documents from the archive's current state: metadata,
statistics, teams, participants and payment events (JSON and semicolon CSV),
plus a README describing the anonymization status. Once an archive is
expired, participant exports drop name and email columns.
"""

import csv
import io
import json
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.config import get_settings
from app.schemas.archives import ArchiveDetail
from app.services.archives.archive_service import get_archive
from app.services.archives.errors import ArchiveNotFoundError

CSV_BOM = "\ufeff"
CSV_DELIMITER = ";"

# Leading characters a spreadsheet may evaluate as a formula
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r", "|", ";")

TEAM_COLUMNS = ["id", "name", "description", "room", "member_count", "created_at"]

PARTICIPANT_COLUMNS = [
    "id",
    "team_id",
    "team_name",
    "first_name",
    "last_name",
    "email",
    "bac_level",
    "is_leader",
    "food_diet",
    "checked_in",
    "payment_status",
    "payment_method",
    "payment_amount",
    "registration_tier",
    "created_at",
]

PERSONAL_COLUMNS = {"first_name", "last_name", "email"}

PAYMENT_EVENT_COLUMNS = ["id", "member_id", "event_type", "amount", "tier", "created_at"]


def escape_csv_cell(value: Any) -> str:
    """Stringify a cell and neutralize spreadsheet formula injection."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, datetime):
        value = value.isoformat()
    text = str(value)
    if text.startswith(_FORMULA_PREFIXES):
        text = "'" + text
    return text


def generate_csv(headers: list[str], rows: list[list[Any]], include_bom: bool = True) -> str:
    """Semicolon-delimited CSV, UTF-8 BOM for Excel."""
    output = io.StringIO()
    writer = csv.writer(output, delimiter=CSV_DELIMITER, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([escape_csv_cell(cell) for cell in row])
    content = output.getvalue()
    return CSV_BOM + content if include_bom else content


def participant_columns(is_expired: bool) -> list[str]:
    if not is_expired:
        return list(PARTICIPANT_COLUMNS)
    return [column for column in PARTICIPANT_COLUMNS if column not in PERSONAL_COLUMNS]


@dataclass
class ArchiveExportBundle:
    """Derived documents for one archive export."""
    event_year: int
    is_expired: bool
    metadata: dict
    statistics: Optional[dict]
    teams: list[dict]
    participants: list[dict]
    payment_events: list[dict]
    csv_files: dict[str, str] = field(default_factory=dict)
    readme: str = ""

    @property
    def basename(self) -> str:
        return f"{get_settings().EXPORT_FILENAME_PREFIX}-{self.event_year}-archive"

    def to_json_payload(self) -> dict:
        return {
            "filename": f"{self.basename}.json",
            "export": {
                "metadata": self.metadata,
                "statistics": self.statistics,
                "teams": self.teams,
                "participants": self.participants,
                "payment_events": self.payment_events,
            },
        }

    def documents(self) -> dict[str, str]:
        """Every document of the bundle, keyed by file name."""
        docs = {
            "metadata.json": json.dumps(self.metadata, indent=2, ensure_ascii=False),
            "statistics.json": json.dumps(self.statistics, indent=2, ensure_ascii=False),
            "teams.json": json.dumps(self.teams, indent=2, ensure_ascii=False),
            "participants.json": json.dumps(self.participants, indent=2, ensure_ascii=False),
        }
        if self.payment_events:
            docs["payment_events.json"] = json.dumps(self.payment_events, indent=2, ensure_ascii=False)
        docs.update(self.csv_files)
        docs["README.txt"] = self.readme
        return docs

    def to_zip_bytes(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name, content in self.documents().items():
                zf.writestr(f"{self.basename}/{name}", content)
        return buffer.getvalue()


def _readme(detail: ArchiveDetail) -> str:
    lines = [
        f"EVENT ARCHIVE {detail.event_year}",
        "",
        f"Archived at: {detail.archived_at.isoformat()}",
        f"Retention deadline: {detail.expiration_date.isoformat()}",
        f"Teams: {detail.total_teams}",
        f"Participants: {detail.total_participants}",
        f"Revenue: {detail.total_revenue / 100:.2f} EUR",
        f"Data hash: {detail.data_hash}",
        "",
    ]
    if detail.is_expired:
        anonymized = detail.anonymized_at.isoformat() if detail.anonymized_at else "unknown"
        lines += [
            "GDPR STATUS: ANONYMIZED",
            f"The retention period has elapsed. Personal data was anonymized on {anonymized}.",
            "Participant names, emails and payment references are no longer available.",
            "Statistics were computed before anonymization and remain accurate.",
            "The data hash covers the original snapshot; anonymized_data_hash covers the current one.",
        ]
    else:
        lines += [
            "GDPR STATUS: PERSONAL DATA PRESENT",
            "This export contains personal data. Store it securely and do not share it.",
            f"Personal data will be anonymized after {detail.expiration_date.date().isoformat()}.",
        ]
    lines += ["", f"Integrity check: {'OK' if detail.integrity_verified else 'MISMATCH'}", ""]
    return "\n".join(lines)


def build_export_bundle(detail: ArchiveDetail) -> ArchiveExportBundle:
    """Build the export documents from an archive as returned by get_archive()."""
    team_names = {team.id: team.name for team in detail.teams}
    columns = participant_columns(detail.is_expired)

    teams = [team.model_dump(mode="json") for team in detail.teams]
    payment_events = [event.model_dump(mode="json") for event in detail.payment_events]

    participants = []
    for member in detail.members:
        row = member.model_dump(mode="json")
        if detail.is_expired:
            for column in PERSONAL_COLUMNS:
                row.pop(column, None)
        participants.append(row)

    participant_rows = []
    for member in detail.members:
        values = member.model_dump()
        values["team_name"] = team_names.get(member.team_id)
        participant_rows.append([values.get(column) for column in columns])

    csv_files = {
        "teams.csv": generate_csv(
            TEAM_COLUMNS,
            [[getattr(team, column) for column in TEAM_COLUMNS] for team in detail.teams],
        ),
        "participants.csv": generate_csv(columns, participant_rows),
    }
    if detail.payment_events:
        csv_files["payment_events.csv"] = generate_csv(
            PAYMENT_EVENT_COLUMNS,
            [[getattr(event, column) for column in PAYMENT_EVENT_COLUMNS] for event in detail.payment_events],
        )

    metadata = {
        "event_year": detail.event_year,
        "archived_at": detail.archived_at.isoformat(),
        "expiration_date": detail.expiration_date.isoformat(),
        "is_expired": detail.is_expired,
        "anonymized_at": detail.anonymized_at.isoformat() if detail.anonymized_at else None,
        "total_teams": detail.total_teams,
        "total_participants": detail.total_participants,
        "total_revenue": detail.total_revenue,
        "data_hash": detail.data_hash,
        "anonymized_data_hash": detail.anonymized_data_hash,
        "integrity_verified": detail.integrity_verified,
    }

    return ArchiveExportBundle(
        event_year=detail.event_year,
        is_expired=detail.is_expired,
        metadata=metadata,
        statistics=detail.stats.model_dump(mode="json") if detail.stats else None,
        teams=teams,
        participants=participants,
        payment_events=payment_events,
        csv_files=csv_files,
        readme=_readme(detail),
    )


def export_archive(db: Session, year: int, now: Optional[datetime] = None) -> ArchiveExportBundle:
    """
    Export bundle for the archive of `year`, expiration applied first.

    Raises:
        ArchiveNotFoundError: no archive for `year`
        ArchiveStorageError: reading or anonymizing the archive failed
    """
    detail = get_archive(db, year, now=now)
    if detail is None:
        raise ArchiveNotFoundError(year)
    return build_export_bundle(detail)
