from opshub.allocations.models import CustomerAllocation  # noqa: F401
from opshub.customers.models import Customer  # noqa: F401
from opshub.geography.models import Area, Circle, Cluster, Zone  # noqa: F401
from opshub.users.models import User  # noqa: F401
