"""Models package - exports all SQLAlchemy models."""
# Staff and clients
from medisale.models.app_user import AppUser, UserRole
from medisale.models.patient import Patient
from medisale.models.company import Company

# Inventory
from medisale.models.product import Product, ProductType
from medisale.models.stock import Stock, StockLocation
from medisale.models.medical_device import MedicalDevice, DeviceStatus

# Sales
from medisale.models.sale import Sale, SaleStatus
from medisale.models.sale_item import SaleItem
from medisale.models.payment import (
    Payment, PaymentDetail, PaymentStatus, PaymentMethod, PaymentClassification
)
from medisale.models.insurance_dossier import (
    InsuranceDossier, DossierStepHistory, CNAMBondType, CNAMStatus
)
from medisale.models.patient_history import PatientHistory, ActionType

__all__ = [
    'AppUser', 'UserRole', 'Patient', 'Company',
    'Product', 'ProductType', 'Stock', 'StockLocation', 'MedicalDevice', 'DeviceStatus',
    'Sale', 'SaleStatus', 'SaleItem',
    'Payment', 'PaymentDetail', 'PaymentStatus', 'PaymentMethod', 'PaymentClassification',
    'InsuranceDossier', 'DossierStepHistory', 'CNAMBondType', 'CNAMStatus',
    'PatientHistory', 'ActionType',
]
