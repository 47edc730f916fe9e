from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Sequence
from uuid import uuid4

from .config import EngineConfig
from .embeddings import cosine_similarity
from .gateway import AppointmentNotFoundError, ReservationError, SlotUnavailableError
from .models import AppointmentSlot, SimilarCase

logger = logging.getLogger(__name__)

DB_TIME_FMT = "%Y-%m-%d %H:%M:%S"
SEED_TIMES = ("09:00", "10:30", "13:00", "15:30", "17:30")


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def to_db_time(value: datetime) -> str:
    return value.strftime(DB_TIME_FMT)


def to_db_date(value: date | datetime | str) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def _date_placeholders(dates: Sequence[date]) -> tuple[str, list[str]]:
    values = sorted({to_db_date(item) for item in dates})
    return ", ".join("?" for _ in values), values


class SQLiteAvailabilityGateway:
    def __init__(self, db_path: str, *, strict_reservation: bool = False) -> None:
        self.db_path = str(Path(db_path))
        self.strict_reservation = strict_reservation

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _managed_conn(self, conn: sqlite3.Connection | None):
        if conn is not None:
            yield conn
            return
        with self.connect() as local_conn:
            yield local_conn

    def init_db(self) -> None:
        schema = """
        CREATE TABLE IF NOT EXISTS appointments (
            id TEXT PRIMARY KEY,
            department TEXT NOT NULL,
            doctor_id TEXT NOT NULL,
            doctor_name TEXT NOT NULL,
            date TEXT NOT NULL,
            time_slot TEXT NOT NULL,
            duration INTEGER NOT NULL DEFAULT 30,
            status TEXT NOT NULL DEFAULT 'available',
            patient_id TEXT,
            reason TEXT,
            reserved_at TEXT,
            cancelled_at TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS medical_cases (
            id TEXT PRIMARY KEY,
            symptoms TEXT NOT NULL,
            severity TEXT NOT NULL,
            department TEXT NOT NULL,
            embedding TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS agent_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            agent TEXT NOT NULL,
            activity TEXT NOT NULL,
            data TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE INDEX IF NOT EXISTS idx_appointments_lookup
            ON appointments(department, status, date, time_slot);
        CREATE INDEX IF NOT EXISTS idx_appointments_patient
            ON appointments(patient_id, status, date);
        CREATE INDEX IF NOT EXISTS idx_appointments_doctor
            ON appointments(doctor_id, status, date);
        """
        with self.connect() as conn:
            conn.executescript(schema)

    def seed_slots_if_empty(self, config: EngineConfig) -> None:
        with self.connect() as conn:
            slot_count = conn.execute("SELECT COUNT(*) FROM appointments;").fetchone()[0]
            if slot_count > 0:
                return

            today = utc_now().date()
            for day in range(1, config.seed_days + 1):
                slot_date = today + timedelta(days=day)
                for department, doctors in config.department_doctors.items():
                    for index, time_slot in enumerate(SEED_TIMES):
                        doctor_id, doctor_name = doctors[(index + day) % len(doctors)]
                        self.create_slot(
                            department=department,
                            doctor_id=doctor_id,
                            doctor_name=doctor_name,
                            slot_date=slot_date,
                            time_slot=time_slot,
                            conn=conn,
                        )

    def create_slot(
        self,
        *,
        department: str,
        doctor_id: str,
        doctor_name: str,
        slot_date: date,
        time_slot: str,
        duration: int = 30,
        status: str = "available",
        patient_id: str | None = None,
        slot_id: str | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> str:
        slot_id = slot_id or uuid4().hex
        with self._managed_conn(conn) as db:
            db.execute(
                """
                INSERT INTO appointments (
                    id, department, doctor_id, doctor_name, date, time_slot,
                    duration, status, patient_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    slot_id,
                    department,
                    doctor_id,
                    doctor_name,
                    to_db_date(slot_date),
                    time_slot,
                    duration,
                    status,
                    patient_id,
                ),
            )
        return slot_id

    def get_appointment(self, appointment_id: str) -> dict[str, Any] | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM appointments WHERE id = ?;", (appointment_id,)
            ).fetchone()
            return dict(row) if row else None

    def find_slots(
        self,
        *,
        department: str,
        start_date: date,
        end_date: date,
        doctor_id: str | None = None,
        limit: int = 20,
    ) -> list[AppointmentSlot]:
        query = """
            SELECT *
            FROM appointments
            WHERE department = ?
              AND status = 'available'
              AND date >= ?
              AND date <= ?
        """
        params: list[Any] = [department, to_db_date(start_date), to_db_date(end_date)]
        if doctor_id:
            query += " AND doctor_id = ?"
            params.append(doctor_id)
        query += " ORDER BY date ASC, time_slot ASC LIMIT ?;"
        params.append(limit)

        try:
            with self.connect() as conn:
                rows = conn.execute(query, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            logger.warning("Slot query failed for department=%s: %s", department, exc)
            return []
        return [self._row_to_slot(row) for row in rows]

    def find_patient_bookings(
        self, *, patient_id: str, status: str, dates: Sequence[date]
    ) -> list[dict[str, Any]]:
        return self._find_bookings("patient_id", patient_id, status, dates)

    def find_doctor_bookings(
        self, *, doctor_id: str, status: str, dates: Sequence[date]
    ) -> list[dict[str, Any]]:
        return self._find_bookings("doctor_id", doctor_id, status, dates)

    def _find_bookings(
        self, column: str, value: str, status: str, dates: Sequence[date]
    ) -> list[dict[str, Any]]:
        if not dates:
            return []
        placeholders, date_values = _date_placeholders(dates)
        query = f"""
            SELECT *
            FROM appointments
            WHERE {column} = ?
              AND status = ?
              AND date IN ({placeholders})
            ORDER BY date ASC, time_slot ASC;
        """
        try:
            with self.connect() as conn:
                rows = conn.execute(query, (value, status, *date_values)).fetchall()
        except sqlite3.Error as exc:
            logger.warning("Booking lookup failed for %s=%s: %s", column, value, exc)
            return []
        return [dict(row) for row in rows]

    def reserve_slot(self, *, slot_id: str, patient_id: str, reason: str) -> None:
        query = """
            UPDATE appointments
            SET status = 'reserved', patient_id = ?, reason = ?, reserved_at = ?
            WHERE id = ?
        """
        if self.strict_reservation:
            query += " AND status = 'available'"
        try:
            with self.connect() as conn:
                updated = conn.execute(
                    query + ";",
                    (patient_id, reason, to_db_time(utc_now()), slot_id),
                )
                if updated.rowcount == 1:
                    return
                exists = conn.execute(
                    "SELECT status FROM appointments WHERE id = ?;", (slot_id,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise ReservationError(f"Reservation write failed for slot {slot_id}: {exc}") from exc

        if exists is None:
            raise ReservationError(f"Slot {slot_id} does not exist.")
        raise SlotUnavailableError(
            f"Slot {slot_id} is no longer available (status={exists['status']})."
        )

    def release_slot(self, appointment_id: str) -> None:
        with self.connect() as conn:
            updated = conn.execute(
                """
                UPDATE appointments
                SET status = 'available', patient_id = NULL, reason = NULL, cancelled_at = ?
                WHERE id = ?;
                """,
                (to_db_time(utc_now()), appointment_id),
            )
            if updated.rowcount != 1:
                raise AppointmentNotFoundError(f"Appointment {appointment_id} not found.")

    def count_waiting(self, department: str) -> int | None:
        try:
            with self.connect() as conn:
                row = conn.execute(
                    """
                    SELECT COUNT(*)
                    FROM appointments
                    WHERE department = ? AND status = 'waiting';
                    """,
                    (department,),
                ).fetchone()
        except sqlite3.Error as exc:
            logger.warning("Queue depth lookup failed for department=%s: %s", department, exc)
            return None
        return int(row[0])

    def add_case(
        self,
        *,
        symptoms: str,
        severity: str,
        department: str,
        embedding: Sequence[float],
        case_id: str | None = None,
    ) -> str:
        case_id = case_id or uuid4().hex
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO medical_cases (id, symptoms, severity, department, embedding)
                VALUES (?, ?, ?, ?, ?);
                """,
                (case_id, symptoms, severity, department, json.dumps(list(embedding))),
            )
        return case_id

    def find_similar_cases(
        self, embedding: Sequence[float], *, limit: int = 10, min_similarity: float = 0.0
    ) -> list[SimilarCase]:
        if not embedding or limit <= 0:
            return []
        try:
            with self.connect() as conn:
                rows = conn.execute(
                    "SELECT id, symptoms, severity, department, embedding FROM medical_cases;"
                ).fetchall()
        except sqlite3.Error as exc:
            logger.warning("Similar case lookup failed: %s", exc)
            return []

        scored: list[SimilarCase] = []
        for row in rows:
            try:
                stored = json.loads(row["embedding"])
            except (TypeError, json.JSONDecodeError):
                continue
            if len(stored) != len(embedding):
                continue
            similarity = cosine_similarity(embedding, stored)
            if similarity < min_similarity:
                continue
            scored.append(
                SimilarCase(
                    case_id=row["id"],
                    symptoms=row["symptoms"],
                    severity=row["severity"],
                    department=row["department"],
                    similarity=round(similarity, 4),
                )
            )
        scored.sort(key=lambda item: item.similarity, reverse=True)
        return scored[:limit]

    def log_activity(self, *, agent: str, activity: str, data: dict[str, Any]) -> None:
        try:
            with self.connect() as conn:
                conn.execute(
                    "INSERT INTO agent_logs (agent, activity, data) VALUES (?, ?, ?);",
                    (agent, activity, json.dumps(data, default=str)),
                )
        except sqlite3.Error as exc:
            logger.warning("Failed to log activity %s for %s: %s", activity, agent, exc)

    def recent_activity(self, limit: int = 30) -> list[dict[str, Any]]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT id, agent, activity, data, created_at
                FROM agent_logs
                ORDER BY id DESC
                LIMIT ?;
                """,
                (limit,),
            ).fetchall()
        items = []
        for row in rows:
            item = dict(row)
            item["data"] = json.loads(item["data"])
            items.append(item)
        return items

    @staticmethod
    def _row_to_slot(row: sqlite3.Row) -> AppointmentSlot:
        return AppointmentSlot(
            slot_id=row["id"],
            doctor_id=row["doctor_id"],
            doctor_name=row["doctor_name"],
            date=date.fromisoformat(row["date"]),
            time=row["time_slot"],
            duration_minutes=int(row["duration"]),
            department=row["department"],
        )
