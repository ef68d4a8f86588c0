import unittest
from decimal import Decimal

from backoffice.enums import DiscountType
from backoffice.errors import ValidationError
from backoffice.services.discount_service import (
    DiscountLine,
    calculate_discounts,
    parse_discount_lines,
)


class ParseDiscountLinesTests(unittest.TestCase):
    def test_fixed_and_percentage_entries(self):
        lines = parse_discount_lines([
            {"type": "TOTAL_FIXED", "amount": 5},
            {"type": "ITEM_PERCENTAGE", "percentage": "12.5", "transaction_item_index": 1},
        ])

        self.assertEqual(lines[0], DiscountLine(DiscountType.TOTAL_FIXED, Decimal("5")))
        self.assertEqual(lines[1].type, DiscountType.ITEM_PERCENTAGE)
        self.assertEqual(lines[1].value, Decimal("12.5"))
        self.assertEqual(lines[1].item_index, 1)
        self.assertEqual(lines[1].percentage, Decimal("12.5"))
        self.assertIsNone(lines[0].percentage)

    def test_none_means_no_discounts(self):
        self.assertEqual(parse_discount_lines(None), [])

    def test_unknown_type_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_discount_lines([{"type": "BOGO", "amount": 1}])
        self.assertEqual(ctx.exception.message, "Invalid discount type")

    def test_missing_value_names_the_field(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_discount_lines([{"type": "TOTAL_FIXED", "percentage": 10}])
        self.assertEqual(ctx.exception.message, "amount is required for TOTAL_FIXED discount")

    def test_item_discount_requires_index(self):
        with self.assertRaises(ValidationError):
            parse_discount_lines([{"type": "ITEM_FIXED", "amount": 1}])

    def test_item_index_must_be_integer(self):
        with self.assertRaises(ValidationError):
            parse_discount_lines([{"type": "ITEM_FIXED", "amount": 1, "transaction_item_index": "0"}])


class CalculateDiscountsTests(unittest.TestCase):
    def setUp(self):
        self.item_totals = [Decimal("10.00"), Decimal("4.00")]
        self.subtotal = Decimal("14.00")

    def test_total_fixed(self):
        result = calculate_discounts(
            self.subtotal, self.item_totals, [DiscountLine(DiscountType.TOTAL_FIXED, Decimal("5"))]
        )
        self.assertEqual(result.total, Decimal("5.00"))
        self.assertIsNone(result.discounts[0].item_index)

    def test_total_percentage(self):
        result = calculate_discounts(
            self.subtotal, self.item_totals, [DiscountLine(DiscountType.TOTAL_PERCENTAGE, Decimal("10"))]
        )
        self.assertEqual(result.total, Decimal("1.40"))
        self.assertEqual(result.discounts[0].percentage, Decimal("10"))

    def test_item_discounts_use_the_item_total(self):
        result = calculate_discounts(
            self.subtotal,
            self.item_totals,
            [
                DiscountLine(DiscountType.ITEM_PERCENTAGE, Decimal("50"), item_index=1),
                DiscountLine(DiscountType.ITEM_FIXED, Decimal("3"), item_index=0),
            ],
        )
        self.assertEqual([d.amount for d in result.discounts], [Decimal("2.00"), Decimal("3.00")])
        self.assertEqual([d.item_index for d in result.discounts], [1, 0])
        self.assertEqual(result.total, Decimal("5.00"))

    def test_percentage_rounds_half_up(self):
        # 10 % of 0.05 = 0.005
        result = calculate_discounts(
            Decimal("0.05"), [Decimal("0.05")], [DiscountLine(DiscountType.TOTAL_PERCENTAGE, Decimal("10"))]
        )
        self.assertEqual(result.total, Decimal("0.01"))

    def test_no_lines(self):
        result = calculate_discounts(self.subtotal, self.item_totals, [])
        self.assertEqual(result.total, Decimal("0"))
        self.assertEqual(result.discounts, [])

    def test_negative_value(self):
        with self.assertRaises(ValidationError):
            calculate_discounts(
                self.subtotal, self.item_totals, [DiscountLine(DiscountType.TOTAL_FIXED, Decimal("-1"))]
            )

    def test_percentage_over_100(self):
        with self.assertRaises(ValidationError):
            calculate_discounts(
                self.subtotal, self.item_totals, [DiscountLine(DiscountType.TOTAL_PERCENTAGE, Decimal("100.01"))]
            )

    def test_item_index_out_of_range(self):
        with self.assertRaises(ValidationError) as ctx:
            calculate_discounts(
                self.subtotal, self.item_totals, [DiscountLine(DiscountType.ITEM_FIXED, Decimal("1"), item_index=2)]
            )
        self.assertEqual(ctx.exception.message, "Invalid transaction item index for discount")

    def test_fixed_amount_above_subtotal_is_not_clamped(self):
        with self.assertRaises(ValidationError):
            calculate_discounts(
                self.subtotal, self.item_totals, [DiscountLine(DiscountType.TOTAL_FIXED, Decimal("14.01"))]
            )

    def test_item_fixed_above_item_total(self):
        with self.assertRaises(ValidationError):
            calculate_discounts(
                self.subtotal, self.item_totals, [DiscountLine(DiscountType.ITEM_FIXED, Decimal("5"), item_index=1)]
            )

    def test_sum_of_discounts_above_subtotal(self):
        with self.assertRaises(ValidationError) as ctx:
            calculate_discounts(
                self.subtotal,
                self.item_totals,
                [
                    DiscountLine(DiscountType.TOTAL_FIXED, Decimal("10")),
                    DiscountLine(DiscountType.TOTAL_PERCENTAGE, Decimal("50")),
                ],
            )
        self.assertEqual(ctx.exception.message, "Total discount exceeds the subtotal")


if __name__ == "__main__":
    unittest.main()
