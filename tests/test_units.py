import unittest
from decimal import Decimal

from chainseries.core.units import ether_to_wei, round_eth, wei_to_ether


class WeiDecodingTests(unittest.TestCase):
    def test_one_and_a_half_ether(self) -> None:
        self.assertEqual(wei_to_ether("1500000000000000000"), Decimal("1.5"))

    def test_short_value_is_padded(self) -> None:
        self.assertEqual(wei_to_ether("1"), Decimal("0.000000000000000001"))
        self.assertEqual(wei_to_ether("0"), Decimal("0"))

    def test_large_value_keeps_integer_part(self) -> None:
        wei = "123456789012345678901234567890"
        self.assertEqual(wei_to_ether(wei), Decimal("123456789012.345678901234567890"))

    def test_int_input(self) -> None:
        self.assertEqual(wei_to_ether(2 * 10**18), Decimal("2"))

    def test_encode_then_decode(self) -> None:
        for eth in ("1.5", "0.0001", "42", "3.141592653589793238"):
            self.assertEqual(wei_to_ether(ether_to_wei(Decimal(eth))), Decimal(eth))

    def test_garbage_rejected(self) -> None:
        with self.assertRaises(ValueError):
            wei_to_ether("0x10")

    def test_round_eth(self) -> None:
        self.assertEqual(round_eth(Decimal("1.23456")), Decimal("1.2346"))


if __name__ == "__main__":
    unittest.main()
