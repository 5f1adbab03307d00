"""
Unit tests for SQLAlchemy models.
"""

import pytest
import uuid
from decimal import Decimal
from sqlalchemy.exc import IntegrityError

from medisale.models import (
    AppUser, UserRole, Sale, SaleStatus, SaleItem, Stock, Payment, PaymentStatus
)


class TestAppUserModel:
    """Tests for AppUser model."""

    def test_create_user(self, session):
        """Test creating a user."""
        suffix = str(uuid.uuid4())[:8]
        email = f'test_{suffix}@example.com'
        user = AppUser(
            email=email,
            first_name='Test',
            last_name='User',
            active=True
        )
        user.set_password('securepassword')
        session.add(user)
        session.commit()

        assert user.id is not None
        assert user.email == email
        assert user.role is UserRole.EMPLOYEE
        assert user.full_name == 'Test User'

    def test_password_hashing(self, session):
        """Test password is hashed and can be verified."""
        user = AppUser(email='hash@example.com', first_name='Hash', last_name='Test')
        user.set_password('mypassword')

        assert user.password_hash != 'mypassword'
        assert user.check_password('mypassword')
        assert not user.check_password('wrongpassword')

    def test_email_unique(self, session, staff):
        """Test that email must be unique."""
        session.add(AppUser(email=staff.email, first_name='Dup', last_name='User'))

        with pytest.raises(IntegrityError):
            session.commit()


class TestSaleModel:
    """Tests for Sale model."""

    def _sale(self, staff, **kwargs):
        values = dict(
            invoice_number='20260315-101500',
            total_amount=Decimal('500.00'),
            discount=Decimal('50.00'),
            final_amount=Decimal('450.00'),
            status=SaleStatus.PENDING,
            processed_by_id=staff.id
        )
        values.update(kwargs)
        return Sale(**values)

    def test_patient_sale(self, session, staff, patient):
        sale = self._sale(staff, patient_id=patient.id)
        session.add(sale)
        session.commit()

        assert sale.client_type == 'PATIENT'
        assert sale.client_name == 'Mohamed Gharbi'
        assert sale.amount_due == Decimal('450.00')

    def test_company_sale(self, session, staff, company):
        sale = self._sale(staff, company_id=company.id)
        session.add(sale)
        session.commit()

        assert sale.client_type == 'COMPANY'
        assert sale.client_name == 'Clinique El Amen'

    def test_single_client_enforced(self, session, staff, patient, company):
        session.add(self._sale(staff, patient_id=patient.id, company_id=company.id))

        with pytest.raises(IntegrityError):
            session.commit()

    def test_invoice_number_unique(self, session, staff, patient):
        session.add(self._sale(staff, patient_id=patient.id))
        session.commit()
        session.add(self._sale(staff, patient_id=patient.id))

        with pytest.raises(IntegrityError):
            session.commit()

    def test_amount_due_with_payment(self, session, staff, patient):
        payment = Payment(amount=Decimal('400.00'), method='cash', status=PaymentStatus.PARTIAL)
        sale = self._sale(staff, patient_id=patient.id, payment=payment)
        session.add(sale)
        session.commit()

        assert sale.amount_due == Decimal('50.00')
        assert payment.sale is sale


class TestSaleItemModel:

    def test_item_needs_exactly_one_article(self, session, staff, patient, product, device):
        sale = Sale(
            invoice_number='20260315-101500',
            total_amount=Decimal('100.00'),
            final_amount=Decimal('100.00'),
            patient_id=patient.id,
            processed_by_id=staff.id
        )
        sale.items.append(SaleItem(
            product_id=product.id,
            medical_device_id=device.id,
            quantity=1,
            unit_price=Decimal('100.00'),
            item_total=Decimal('100.00')
        ))
        session.add(sale)

        with pytest.raises(IntegrityError):
            session.commit()

    def test_item_name(self, session, staff, patient, product):
        sale = Sale(
            invoice_number='20260315-101500',
            total_amount=Decimal('500.00'),
            final_amount=Decimal('500.00'),
            patient_id=patient.id,
            processed_by_id=staff.id
        )
        sale.items.append(SaleItem(
            product_id=product.id,
            quantity=1,
            unit_price=Decimal('500.00'),
            item_total=Decimal('500.00')
        ))
        session.add(sale)
        session.commit()

        assert sale.items[0].name == 'Masque nasal CPAP'


class TestStockModel:

    def test_quantity_cannot_go_negative(self, session, product):
        stock = session.query(Stock).filter_by(product_id=product.id).one()
        stock.quantity = -1

        with pytest.raises(IntegrityError):
            session.commit()
