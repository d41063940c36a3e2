from __future__ import annotations

import unittest

from notification_relay.adapters.payload import (
    EventDecodeError,
    decode_message_body,
    parse_event,
)
from notification_relay.domain.events import (
    AuthEvent,
    OrderEvent,
    ProductEvent,
    UnrecognizedEvent,
    UserDataSync,
)


class DecodeMessageBodyTests(unittest.TestCase):
    def test_accepts_bytes(self) -> None:
        payload = decode_message_body(b'{"type":"user_created","data":{"userId":1}}')
        self.assertEqual(payload["type"], "user_created")

    def test_rejects_invalid_json(self) -> None:
        with self.assertRaises(EventDecodeError):
            decode_message_body(b"{not json")

    def test_rejects_non_object_json(self) -> None:
        with self.assertRaises(EventDecodeError):
            decode_message_body(b'["not","an","object"]')

    def test_rejects_invalid_utf8(self) -> None:
        with self.assertRaises(EventDecodeError):
            decode_message_body(b"\xff\xfe")

    def test_rejects_missing_body(self) -> None:
        with self.assertRaises(EventDecodeError):
            decode_message_body(None)


class ParseEventTests(unittest.TestCase):
    def test_auth_event_normalizes_numeric_user_id(self) -> None:
        event = parse_event({"type": "user_logged_in", "data": {"userId": 42}})

        self.assertEqual(event, AuthEvent(type="user_logged_in", user_id="42"))

    def test_product_event_reads_nested_seller(self) -> None:
        event = parse_event(
            {
                "type": "product_updated",
                "data": {
                    "title": "Widget",
                    "description": "A widget",
                    "price": 9.5,
                    "quantity": 3,
                    "category": "tools",
                    "seller": {"id": 7},
                },
            }
        )

        self.assertIsInstance(event, ProductEvent)
        self.assertEqual(event.seller_id, "7")
        self.assertEqual(event.category, "tools")

    def test_order_event_builds_line_items(self) -> None:
        event = parse_event(
            {
                "type": "order_placed",
                "data": {
                    "userId": 1,
                    "sellerIds": [7, "8"],
                    "titles": ["Widget", "Gadget"],
                    "quantities": [2, 1],
                },
            }
        )

        self.assertIsInstance(event, OrderEvent)
        self.assertEqual([item.seller_id for item in event.line_items], ["7", "8"])
        self.assertEqual(event.titles, ["Widget", "Gadget"])

    def test_order_event_rejects_mismatched_arrays(self) -> None:
        with self.assertRaises(EventDecodeError):
            parse_event(
                {
                    "type": "order_placed",
                    "data": {
                        "userId": 1,
                        "sellerIds": [7, 8],
                        "titles": ["Widget"],
                        "quantities": [2, 1],
                    },
                }
            )

    def test_missing_type_is_decode_error(self) -> None:
        with self.assertRaises(EventDecodeError):
            parse_event({"data": {"userId": 1}})

    def test_unknown_type_is_unrecognized_event(self) -> None:
        event = parse_event({"type": "coupon_issued", "data": {"code": "X"}})

        self.assertEqual(event, UnrecognizedEvent(type="coupon_issued", data={"code": "X"}))

    def test_bare_user_sync_record_uses_default_type(self) -> None:
        event = parse_event(
            {"id": 5, "username": "sam", "email": "sam@example.com", "role": "SHOP_OWNER"},
            default_type="user_data_sync",
        )

        self.assertIsInstance(event, UserDataSync)
        self.assertEqual(event.user.id, "5")
        self.assertEqual(event.user.role, "SHOP_OWNER")

    def test_user_sync_requires_email(self) -> None:
        with self.assertRaises(EventDecodeError):
            parse_event({"id": 5, "username": "sam"}, default_type="user_data_sync")


if __name__ == "__main__":
    unittest.main()
