"""Tests for order totals."""

from wellness_api.domain.orders.pricing import compute_totals, delivery_fee_for


class TestComputeTotals:
    def test_two_item_order(self):
        totals = compute_totals([(150, 2), (450, 1)])
        assert totals.subtotal == 750.0
        assert totals.delivery_fee == 200.0
        assert totals.tax == 120.0
        assert totals.total == 1070.0

    def test_total_equals_sum_of_parts(self):
        totals = compute_totals([(333.33, 3), (12.5, 1)])
        assert totals.total == round(totals.subtotal + totals.delivery_fee + totals.tax, 2)

    def test_tax_rounds_half_up_to_cents(self):
        # 10.03 * 0.16 = 1.6048 -> 1.60 ; 10.05 * 0.16 = 1.608 -> 1.61
        assert compute_totals([(10.03, 1)]).tax == 1.6
        assert compute_totals([(10.05, 1)]).tax == 1.61

    def test_recorded_fee_and_rate_are_reused(self):
        totals = compute_totals([(500, 1)], delivery_fee=0, tax_rate=0.1)
        assert totals.delivery_fee == 0.0
        assert totals.tax == 50.0
        assert totals.total == 550.0


class TestDeliveryFee:
    def test_fee_charged_at_threshold(self):
        assert delivery_fee_for(1000) == 200.0

    def test_free_strictly_above_threshold(self):
        assert delivery_fee_for(1000.01) == 0.0

    def test_small_order_pays_fee(self):
        assert delivery_fee_for(150) == 200.0
