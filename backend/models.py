from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
import sqlite3
import logging
from shared.models import (
    Base, User, CareRecipient, Medication, MedicationSchedule, MedicationLog, MedicationPharmacy,
    Appointment, Meal, BowelMovement, Urination, Supply, SupplyUsage, Sleep, Note, Doctor, Pharmacy,
    BloodPressure, Glucose, Insulin, EmergencyInfo, AppConfig, RECIPIENT_SCOPED_MODELS
)

logger = logging.getLogger(__name__)
db = SQLAlchemy(model_class=Base)


@event.listens_for(Engine, "connect")
def enable_sqlite_foreign_keys(db_conn, conn_record):
    """SQLite leaves FOREIGN KEY enforcement off unless asked per connection."""
    if isinstance(db_conn, sqlite3.Connection):
        cursor = db_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON;")
        cursor.close()
        logger.debug("Enabled SQLite foreign key enforcement")
