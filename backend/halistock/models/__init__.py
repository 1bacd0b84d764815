from .inventory import Product
from .customers import Customer
from .sales import Transaction, Payment
from .rentals import Rental, CalendarEntry

__all__ = [
    'Product',
    'Customer',
    'Transaction', 'Payment',
    'Rental', 'CalendarEntry',
]
