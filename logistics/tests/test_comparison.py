"""
Comparison & recommendation engine tests.
"""

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase

from core.exceptions import InvalidInput
from logistics.models import Courier
from logistics.services.comparison import (
    Priority, ShipmentRequest, compare_rates, recommend_couriers, score_quote,
    quote, serialize_comparison, serialize_recommendations,
)
from .helpers import make_courier

FIXED_NOW = datetime(2024, 6, 1, 9, 0, tzinfo=dt_timezone.utc)


class ComparisonTestBase(TestCase):

    @classmethod
    def setUpTestData(cls):
        # standard, 2 kg, prepaid: DEL 104 / BLU 100 / DTD 99
        cls.delhivery = make_courier(
            'Delhivery', 'DEL', avg_delivery_days=3, avg_rating=Decimal('4.2'),
        )
        cls.bluedart = make_courier(
            'BlueDart', 'BLU', base_rate=Decimal('60'), weight_rate=Decimal('20'),
            fuel_surcharge=Decimal('0'), avg_delivery_days=2, avg_rating=Decimal('4.5'),
        )
        cls.dtdc = make_courier(
            'DTDC', 'DTD', base_rate=Decimal('30'), weight_rate=Decimal('30'),
            fuel_surcharge=Decimal('10'), avg_delivery_days=4, avg_rating=Decimal('4.0'),
        )

    def couriers(self):
        return [self.delhivery, self.bluedart, self.dtdc]


class TestShipmentRequest(TestCase):

    def test_defaults(self):
        request = ShipmentRequest.from_data({'weight': '2'})
        self.assertEqual(request.weight, Decimal('2'))
        self.assertEqual(request.service_type, 'standard')
        self.assertEqual(request.payment_mode, 'prepaid')
        self.assertFalse(request.is_cod)

    def test_origin_and_destination(self):
        request = ShipmentRequest.from_data({'weight': 1, 'from_city': 'Pune', 'to_pincode': '700016'})
        self.assertEqual(request.origin, 'Pune')
        self.assertEqual(request.destination, '700016')

    def test_missing_weight(self):
        with self.assertRaises(InvalidInput):
            ShipmentRequest.from_data({})

    def test_default_weight(self):
        self.assertEqual(ShipmentRequest.from_data({}, default_weight=1).weight, Decimal('1'))

    def test_invalid_values(self):
        for data in ({'weight': 0}, {'weight': 1, 'service_type': 'rocket'},
                     {'weight': 1, 'payment_mode': 'barter'}):
            with self.subTest(data=data):
                with self.assertRaises(InvalidInput):
                    ShipmentRequest.from_data(data)


class TestCompareRates(ComparisonTestBase):

    def setUp(self):
        self.request = ShipmentRequest.from_data({'weight': 2})

    def test_sorted_by_rate(self):
        result = compare_rates(self.request, self.couriers())
        rates = [q.rate for q in result['comparison']]
        self.assertEqual(rates, [99, 100, 104])
        self.assertEqual([q.courier_code for q in result['comparison']], ['DTD', 'BLU', 'DEL'])

    def test_cheapest_is_minimum(self):
        result = compare_rates(self.request, self.couriers())
        cheapest = result['recommendations']['cheapest']
        self.assertEqual(cheapest['quote'].rate, min(q.rate for q in result['comparison']))
        self.assertEqual(cheapest['reason'], 'Lowest shipping cost')

    def test_fastest_and_best_rated(self):
        result = compare_rates(self.request, self.couriers())
        recommendations = result['recommendations']
        self.assertEqual(recommendations['fastest']['quote'].courier_code, 'BLU')
        self.assertEqual(recommendations['fastest']['reason'], 'Fastest delivery time')
        self.assertEqual(recommendations['recommended']['quote'].courier_code, 'BLU')
        self.assertEqual(recommendations['recommended']['reason'], 'Best overall performance')

    def test_ties_keep_courier_order(self):
        self.dtdc.avg_delivery_days = 2
        self.dtdc.avg_rating = Decimal('4.5')

        result = compare_rates(self.request, [self.dtdc, self.delhivery, self.bluedart])
        self.assertEqual(result['recommendations']['fastest']['quote'].courier_code, 'DTD')
        self.assertEqual(result['recommendations']['recommended']['quote'].courier_code, 'DTD')

        result = compare_rates(self.request, [self.bluedart, self.delhivery, self.dtdc])
        self.assertEqual(result['recommendations']['fastest']['quote'].courier_code, 'BLU')
        self.assertEqual(result['recommendations']['recommended']['quote'].courier_code, 'BLU')

    def test_equal_rates_keep_courier_order(self):
        twin = make_courier('Ecom Express', 'ECO', base_rate=Decimal('30'),
                            weight_rate=Decimal('30'), fuel_surcharge=Decimal('10'))
        result = compare_rates(self.request, [twin, self.dtdc])
        self.assertEqual([q.courier_code for q in result['comparison']], ['ECO', 'DTD'])

    def test_cod_applies_charges(self):
        request = ShipmentRequest.from_data({'weight': 2, 'payment_mode': 'cod'})
        result = compare_rates(request, [self.delhivery])
        self.assertEqual(result['comparison'][0].rate, 104 + 35)

    def test_no_couriers(self):
        self.assertEqual(
            compare_rates(self.request, []),
            {'comparison': [], 'recommendations': {}},
        )

    def test_idempotent(self):
        with patch('logistics.services.comparison.timezone.now', return_value=FIXED_NOW):
            first = serialize_comparison(compare_rates(self.request, self.couriers()))
            second = serialize_comparison(compare_rates(self.request, self.couriers()))
        self.assertEqual(first, second)

    def test_reads_current_courier_data(self):
        before = compare_rates(self.request, Courier.objects.filter(code='DEL'))
        Courier.objects.filter(code='DEL').update(base_rate=Decimal('140'))
        after = compare_rates(self.request, Courier.objects.filter(code='DEL'))
        self.assertEqual(before['comparison'][0].rate, 104)
        self.assertEqual(after['comparison'][0].rate, 219)

    def test_serialized_shape(self):
        data = serialize_comparison(compare_rates(self.request, self.couriers()))
        first = data['comparison'][0]
        self.assertEqual(first['courier']['code'], 'DTD')
        self.assertEqual(first['rate'], 99)
        self.assertEqual(first['estimated_days'], 4)
        self.assertTrue(first['features']['tracking'])
        self.assertEqual(data['recommendations']['cheapest']['rate'], 99)
        self.assertEqual(data['recommendations']['fastest']['estimated_days'], 2)
        self.assertEqual(data['recommendations']['recommended']['rating'], 4.5)


class TestRecommendCouriers(ComparisonTestBase):

    def setUp(self):
        self.request = ShipmentRequest.from_data({'weight': 2})

    def test_balanced_score(self):
        """(500-104)/10 + (10-3)*8 + 95*0.5 = 143.1"""
        rate_quote = quote(self.delhivery, self.request)
        self.assertEqual(score_quote(rate_quote, Priority.BALANCED), Decimal('143.10'))

    def test_cost_priority(self):
        result = recommend_couriers(self.request, self.couriers(), Priority.COST)
        self.assertEqual(result['top_recommendation'].courier_code, 'DTD')

    def test_speed_priority(self):
        result = recommend_couriers(self.request, self.couriers(), Priority.SPEED)
        self.assertEqual(result['top_recommendation'].courier_code, 'BLU')

    def test_reliability_priority(self):
        self.dtdc.delivery_success_rate = Decimal('99.5')
        result = recommend_couriers(self.request, self.couriers(), Priority.RELIABILITY)
        # 99.5 + 4.0*5 = 119.5 beats 95 + 4.5*5 = 117.5
        self.assertEqual(result['top_recommendation'].courier_code, 'DTD')
        self.assertEqual(result['results'][0].score, Decimal('119.50'))

    def test_results_sorted_by_score(self):
        result = recommend_couriers(self.request, self.couriers(), Priority.BALANCED)
        scores = [q.score for q in result['results']]
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertEqual(result['top_recommendation'], result['results'][0])

    def test_unknown_priority_is_balanced(self):
        result = recommend_couriers(self.request, self.couriers(), 'vibes')
        balanced = recommend_couriers(self.request, self.couriers(), Priority.BALANCED)
        self.assertEqual(result['priority'], Priority.BALANCED)
        self.assertEqual(
            [(q.courier_code, q.score) for q in result['results']],
            [(q.courier_code, q.score) for q in balanced['results']],
        )

    def test_scored_as_prepaid(self):
        request = ShipmentRequest.from_data({'weight': 2, 'payment_mode': 'cod'})
        result = recommend_couriers(request, [self.delhivery], Priority.COST)
        self.assertEqual(result['results'][0].rate, 104)

    def test_no_couriers(self):
        result = recommend_couriers(self.request, [], Priority.COST)
        self.assertEqual(result['results'], [])
        self.assertIsNone(result['top_recommendation'])
        self.assertIsNone(serialize_recommendations(result)['top_recommendation'])
