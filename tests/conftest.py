import pytest
from datetime import datetime
from decimal import Decimal
import os
import uuid

# Tests run against an in-memory SQLite database unless a database is configured explicitly
if 'DATABASE_URL' not in os.environ:
    os.environ['DATABASE_URL'] = 'sqlite://'
os.environ.setdefault('FLASK_ENV', 'testing')

from medisale import create_app
from medisale.database import Base, get_engine, get_session
from medisale.models import (
    AppUser, UserRole, Patient, Company, Product, ProductType,
    Stock, StockLocation, MedicalDevice, DeviceStatus
)


FROZEN_NOW = datetime(2026, 3, 15, 10, 15, 0)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.Config')
    app.config['TESTING'] = True
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema and database session for each test."""
    Base.metadata.create_all(bind=get_engine())
    session = get_session()
    yield session
    session.rollback()
    session.remove()
    Base.metadata.drop_all(bind=get_engine())


@pytest.fixture(scope='function')
def staff(session):
    """Create the staff member processing sales."""
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(
        email=f'staff-{suffix}@test.tn',
        first_name='Sami',
        last_name='Ben Salah',
        role=UserRole.EMPLOYEE,
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def doctor(session):
    """Create the patient's responsible doctor."""
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(
        email=f'doctor-{suffix}@test.tn',
        first_name='Amira',
        last_name='Trabelsi',
        role=UserRole.DOCTOR,
        active=True
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def patient(session, doctor):
    """Create a patient followed by the doctor."""
    patient = Patient(
        first_name='Mohamed',
        last_name='Gharbi',
        telephone='+216 20 000 000',
        cnam_id='CN-778899',
        doctor_id=doctor.id
    )
    session.add(patient)
    session.commit()
    return patient


@pytest.fixture(scope='function')
def company(session):
    """Create a company client."""
    company = Company(company_name='Clinique El Amen', telephone='+216 71 000 000')
    session.add(company)
    session.commit()
    return company


@pytest.fixture(scope='function')
def location(session):
    location = StockLocation(name='Dépôt principal')
    session.add(location)
    session.commit()
    return location


@pytest.fixture(scope='function')
def product(session, location):
    """Create a consumable with 10 units in stock."""
    product = Product(
        name='Masque nasal CPAP',
        type=ProductType.CONSUMABLE,
        brand='ResMed',
        selling_price=Decimal('500.00')
    )
    session.add(product)
    session.flush()

    stock = Stock(product_id=product.id, location_id=location.id, quantity=10)
    session.add(stock)
    session.commit()
    return product


@pytest.fixture(scope='function')
def device(session):
    """Create an available medical device."""
    device = MedicalDevice(
        name='Concentrateur oxygène',
        type='CONCENTRATEUR_OXYGENE',
        brand='Philips',
        serial_number=f'SN-{uuid.uuid4().hex[:8]}',
        selling_price=Decimal('2500.00'),
        status=DeviceStatus.ACTIVE
    )
    session.add(device)
    session.commit()
    return device


@pytest.fixture(scope='function')
def make_payload(patient, product):
    """Build a one-item patient sale submission (scenario A by default)."""
    patient_id = patient.id
    product_id = product.id

    def _make(**overrides):
        payload = {
            'patientId': patient_id,
            'items': [{
                'productId': product_id,
                'quantity': 1,
                'unitPrice': 500,
                'itemTotal': 500,
            }],
            'totalAmount': 500,
            'discount': 50,
            'finalAmount': 450,
            'notes': 'Vente comptoir',
            'payment': [{'type': 'cash', 'amount': 450}],
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture(scope='function')
def authenticated_client(client, staff):
    """Create client logged in as the staff member."""
    staff_id = staff.id
    with client.session_transaction() as sess:
        sess['user_id'] = staff_id
    return client
