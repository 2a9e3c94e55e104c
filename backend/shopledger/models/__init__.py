from .catalog import ProductModel
from .customers import CustomerModel
from .sales import SaleModel
from .expenses import ExpenseModel
from .settings import ShopProfileModel, Preference

__all__ = [
    "ProductModel",
    "CustomerModel",
    "SaleModel",
    "ExpenseModel",
    "ShopProfileModel",
    "Preference",
]
