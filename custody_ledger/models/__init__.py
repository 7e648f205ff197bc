from custody_ledger.models.ledger import Ledger
from custody_ledger.models.authorization import ManufacturerAuthorization
from custody_ledger.models.product import Product
from custody_ledger.models.transfer import Transfer

__all__ = ['Ledger', 'ManufacturerAuthorization', 'Product', 'Transfer']
