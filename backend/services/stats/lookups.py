"""
Domain lookups used to attach objects to "most valuable" results.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional


def get_customer(customer_id: int) -> Optional[Any]:
    """Load a Customer by primary key (None if missing)."""
    from models.database import db
    from models.customer import Customer

    return db.session.get(Customer, customer_id)


def get_download(product_id: int) -> Optional[Any]:
    """Load a Download by primary key (None if missing)."""
    from models.database import db
    from models.download import Download

    return db.session.get(Download, product_id)


@dataclass(frozen=True)
class StatsLookups:
    customer: Callable[[int], Optional[Any]] = get_customer
    download: Callable[[int], Optional[Any]] = get_download
