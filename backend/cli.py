import click
import logging
from datetime import time, timedelta
from flask.cli import with_appcontext
from werkzeug.security import generate_password_hash
from .models import (
    db, User, CareRecipient, Medication, MedicationSchedule, MedicationLog, Appointment, Meal,
    Supply, Note, Doctor, EmergencyInfo
)
from shared.enums import MealType
from shared.models import naive_now
from shared.validation import Validator, ValidationError

logger = logging.getLogger(__name__)

DEMO_USERNAME = 'demo'
DEMO_PASSWORD = 'demo1234'
DEMO_PIN = '123456'


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create any missing database tables."""
    logger.info("Starting database initialization")
    db.create_all()
    logger.info("Database initialization completed successfully")
    click.echo('Initialized the database.')


@click.command('create-user')
@click.argument('username')
@click.password_option()
@click.option('--name', default='', help='Display name of the caregiver')
@click.option('--email', default=None, help='Contact email address')
@with_appcontext
def create_user_command(username, password, name, email):
    """Create a caregiver account."""
    try:
        validated = Validator.validate_registration_data({
            'username': username, 'password': password, 'name': name, 'email': email
        })
    except ValidationError as e:
        raise click.BadParameter(str(e))

    if User.query.filter_by(username=validated['username']).first():
        raise click.ClickException(f"User '{validated['username']}' already exists")

    user = User(
        username=validated['username'],
        name=validated.get('name', ''),
        email=validated.get('email'),
        password_hash=generate_password_hash(validated['password'])
    )
    db.session.add(user)
    db.session.commit()
    logger.info(f"Created user {user.id} ({user.username}) from the command line")
    click.echo(f"Created user {user.username} (id {user.id})")


def _seed_recipient(user, name, color, today):
    """Add one care recipient with a day's worth of sample records."""
    recipient = CareRecipient(name=name, color=color, user=user)
    db.session.add(recipient)
    db.session.flush()

    doctor = Doctor(name='Dr. Rivera', specialty='Primary care', phone_number='555-0100', care_recipient=recipient)
    medication = Medication(
        name='Lisinopril', dosage='10mg', care_recipient=recipient, prescribing_doctor=doctor,
        current_quantity=12, reorder_threshold=5, days_to_reorder=7, refills_remaining=2
    )
    morning = MedicationSchedule(medication=medication, time=time(8, 0), days_of_week=list(range(7)), quantity='1')
    evening = MedicationSchedule(medication=medication, time=time(20, 0), days_of_week=list(range(7)), quantity='1')
    db.session.add_all([doctor, medication, morning, evening])
    db.session.flush()

    db.session.add_all([
        MedicationLog(medication=medication, schedule_id=morning.id, care_recipient=recipient,
                      taken_at=today.replace(hour=8, minute=5)),
        Meal(type=MealType.BREAKFAST.value, food='Oatmeal and fruit', care_recipient=recipient,
             consumed_at=today.replace(hour=7, minute=30)),
        Appointment(title='Checkup', date=(today + timedelta(days=3)).date(), time=time(10, 30),
                    location='Main St Clinic', care_recipient=recipient),
        Supply(name='Depends', quantity=24, threshold=10, care_recipient=recipient),
        Note(title='Welcome', content=f'Sample records for {name}.', care_recipient=recipient),
        EmergencyInfo(care_recipient=recipient, blood_type='O+', allergies='Penicillin',
                      pin_hash=generate_password_hash(DEMO_PIN)),
    ])
    return recipient


@click.command('seed-demo')
@with_appcontext
def seed_demo_command():
    """Create a demo user with two care recipients and sample records."""
    if User.query.filter_by(username=DEMO_USERNAME).first():
        click.echo(f"Demo user '{DEMO_USERNAME}' already exists, nothing to do")
        return

    logger.info("Seeding demo data")
    user = User(username=DEMO_USERNAME, name='Demo Caregiver',
                password_hash=generate_password_hash(DEMO_PASSWORD))
    db.session.add(user)

    today = naive_now().replace(second=0, microsecond=0)
    recipients = [
        _seed_recipient(user, 'Mom', '#4F46E5', today),
        _seed_recipient(user, 'Dad', '#059669', today),
    ]
    db.session.commit()

    logger.info(f"Seeded demo user {user.id} with {len(recipients)} care recipients")
    click.echo(f"Created demo user '{DEMO_USERNAME}' (password {DEMO_PASSWORD}, emergency PIN {DEMO_PIN})")
