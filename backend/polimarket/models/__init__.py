from .hr import HREmployee, Seller
from .customers import Customer
from .inventory import Product, InventoryMovement
from .sales import Sale, SaleLine

__all__ = [
    'HREmployee', 'Seller',
    'Customer',
    'Product', 'InventoryMovement',
    'Sale', 'SaleLine',
]
