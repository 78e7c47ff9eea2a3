"""
Typed stats results.

Gateway breakdowns keep counts and amounts in separate types: a sales
breakdown carries `count`, an earnings breakdown carries `earnings`.
Amount fields hold a float, or a display string when output is 'formatted'.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Union

Amount = Union[float, str]


@dataclass
class GatewaySales:
    """Per-gateway aggregate of orders (COUNT by default)."""
    gateway: str
    count: Union[int, float] = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GatewayEarnings:
    """Per-gateway order amount (SUM or AVG of order totals)."""
    gateway: str
    earnings: Amount = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TopCustomer:
    customer_id: int
    total: Amount
    customer: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'customer_id': self.customer_id,
            'total': self.total,
            'customer': _object_dict(self.customer),
        }


@dataclass
class TopProduct:
    product_id: int
    total: Amount
    download: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'total': self.total,
            'download': _object_dict(self.download),
        }


def _object_dict(obj: Any) -> Any:
    if obj is None:
        return None
    to_dict = getattr(obj, 'to_dict', None)
    return to_dict() if callable(to_dict) else obj
