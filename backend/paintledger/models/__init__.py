from .catalog import CustomerModel, ProductModel
from .sales import SaleModel, SaleItemModel, PaymentModel
from .returns import ReturnModel, ReturnItemModel
from .ledger import CustomerBalanceModel, DocumentSequence

__all__ = [
    'CustomerModel', 'ProductModel',
    'SaleModel', 'SaleItemModel', 'PaymentModel',
    'ReturnModel', 'ReturnItemModel',
    'CustomerBalanceModel', 'DocumentSequence',
]
