from isp_billing.models.billing import (  # noqa: F401
    Invoice,
    InvoiceKind,
    InvoiceStatus,
    PaymentMethod,
)
from isp_billing.models.network import Odp, OdpStatus, Router  # noqa: F401
from isp_billing.models.subscriber import (  # noqa: F401
    ActivePeriodUnit,
    AddonItem,
    AddonItemType,
    BillingStatus,
    BillingType,
    InstallationStatus,
    RouterAccountStatus,
    ServiceStatus,
    Subscriber,
    SubscriberStatus,
)
