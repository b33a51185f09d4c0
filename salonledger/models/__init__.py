# Import models here so Base.metadata sees every table.
from salonledger.models.professional import Professional  # noqa: F401
from salonledger.models.catalog import Product, Service  # noqa: F401
from salonledger.models.reservation import Reservation  # noqa: F401
from salonledger.models.sale import Sale, SaleItem  # noqa: F401

# Ledger side: manual expenses, admin commission config, audit trail, settings
from salonledger.models.ledger import (  # noqa: F401
    AdminUser,
    AppSetting,
    Expense,
    MonthlyAdjustment,
    StockMovement,
)
