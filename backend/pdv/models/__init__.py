from .enums import PaymentMethod, UserRole, SessionStatus
from .ids import new_id
from .catalog import Product
from .customers import Customer
from .auth import User, AuthToken
from .registers import CashRegisterSession
from .sales import Sale, SaleLine, SalePayment

__all__ = [
    'PaymentMethod', 'UserRole', 'SessionStatus', 'new_id',
    'Product', 'Customer',
    'User', 'AuthToken',
    'CashRegisterSession',
    'Sale', 'SaleLine', 'SalePayment',
]
