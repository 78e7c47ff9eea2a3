"""
Typed result serialization tests.
"""
from datetime import datetime
from decimal import Decimal

from models import Customer, Download
from services.stats import GatewayEarnings, GatewaySales, TopCustomer, TopProduct


class TestGatewayResults:

    def test_sales_and_earnings_are_distinct(self):
        assert GatewaySales(gateway='stripe', count=2).to_dict() == {'gateway': 'stripe', 'count': 2}
        assert GatewayEarnings(gateway='stripe', earnings=9.5).to_dict() == {'gateway': 'stripe', 'earnings': 9.5}

    def test_defaults_are_zero(self):
        assert GatewaySales(gateway='manual').count == 0
        assert GatewayEarnings(gateway='manual').earnings == 0.0


class TestTopResults:

    def test_customer_model_serialized(self):
        customer = Customer(id=7, user_id=3, email='buyer@example.com', name='Sam',
                            date_created=datetime(2024, 5, 1, 9, 0))

        result = TopCustomer(customer_id=7, total=100.0, customer=customer).to_dict()

        assert result['customer'] == {
            'id': 7,
            'user_id': 3,
            'email': 'buyer@example.com',
            'name': 'Sam',
            'date_created': '2024-05-01T09:00:00',
        }

    def test_download_model_serialized(self):
        download = Download(id=4, name='Theme', price=Decimal('49.00'), status='publish')

        result = TopProduct(product_id=4, total='$300.00', download=download).to_dict()

        assert result == {
            'product_id': 4,
            'total': '$300.00',
            'download': {'id': 4, 'name': 'Theme', 'price': 49.0, 'status': 'publish'},
        }

    def test_missing_object(self):
        assert TopProduct(product_id=1, total=0.0).to_dict()['download'] is None
