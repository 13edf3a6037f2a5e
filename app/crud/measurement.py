from sqlmodel import Session, select
from typing import Optional, List
from datetime import datetime

from app.models.measurement import Measurement, MeasurementSource, MetricCatalog
from app.schemas.measurement import MeasurementCreate, MeasurementUpdate
from app.utils.dates import as_utc, utc_now
from app.utils.sanitize import sanitize_exercise_notes

DEFAULT_METRICS_CATALOG = [
    ("weight", "Body Weight", "Body Composition", "kg"),
    ("body_fat_percentage", "Body Fat %", "Body Composition", "%"),
    ("waist_circumference", "Waist Circumference", "Body Composition", "cm"),
    ("resting_heart_rate", "Resting Heart Rate", "Cardiovascular", "bpm"),
    ("blood_pressure_systolic", "Blood Pressure (Systolic)", "Cardiovascular", "mmHg"),
    ("blood_pressure_diastolic", "Blood Pressure (Diastolic)", "Cardiovascular", "mmHg"),
    ("glucose", "Fasting Glucose", "Metabolic", "mg/dL"),
    ("hdl", "HDL Cholesterol", "Lipid", "mg/dL"),
    ("ldl", "LDL Cholesterol", "Lipid", "mg/dL"),
    ("triglycerides", "Triglycerides", "Lipid", "mg/dL"),
]

def _measured_at(value: Optional[datetime]) -> datetime:
    """Naive input is taken as UTC; a missing value means now"""
    return as_utc(value) or utc_now()

def get_user_measurement(session: Session, user_id: int, measurement_id: int) -> Optional[Measurement]:
    """Get a measurement only if it belongs to the user"""
    return session.exec(
        select(Measurement).where(
            Measurement.id == measurement_id,
            Measurement.user_id == user_id
        )
    ).first()

def create_measurement(
    session: Session,
    user_id: int,
    measurement: MeasurementCreate,
    source: MeasurementSource = MeasurementSource.MANUAL
) -> Measurement:
    """Record a new measurement"""
    db_measurement = Measurement(
        user_id=user_id,
        metric=measurement.metric,
        value=measurement.value,
        unit=measurement.unit.strip(),
        measured_at=_measured_at(measurement.measured_at),
        source=source,
        notes=sanitize_exercise_notes(measurement.notes)
    )
    session.add(db_measurement)
    session.commit()
    session.refresh(db_measurement)
    return db_measurement

def update_measurement(
    session: Session,
    user_id: int,
    measurement_id: int,
    measurement: MeasurementUpdate
) -> Optional[Measurement]:
    """Edit value, unit, date and notes; the metric key stays as it is"""
    db_measurement = get_user_measurement(session, user_id, measurement_id)
    if not db_measurement:
        return None

    db_measurement.value = measurement.value
    db_measurement.unit = measurement.unit.strip()
    db_measurement.measured_at = _measured_at(measurement.measured_at)
    db_measurement.notes = sanitize_exercise_notes(measurement.notes)
    db_measurement.updated_at = utc_now()

    session.add(db_measurement)
    session.commit()
    session.refresh(db_measurement)
    return db_measurement

def delete_measurement(session: Session, user_id: int, measurement_id: int) -> bool:
    """Delete a measurement owned by the user"""
    db_measurement = get_user_measurement(session, user_id, measurement_id)
    if not db_measurement:
        return False

    session.delete(db_measurement)
    session.commit()
    return True

def seed_metrics_catalog(session: Session) -> List[MetricCatalog]:
    """Insert the default catalog entries that are missing"""
    created = []
    for key, display_name, category, unit in DEFAULT_METRICS_CATALOG:
        if session.get(MetricCatalog, key):
            continue
        entry = MetricCatalog(key=key, display_name=display_name, category=category, unit=unit)
        session.add(entry)
        created.append(entry)
    session.commit()
    return created
