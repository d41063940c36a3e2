from __future__ import annotations

import asyncio
import unittest

from notification_relay.application.enrichment import EnrichmentGateway
from notification_relay.application.handlers import (
    AuthEventHandler,
    OrderEventHandler,
    ProductEventHandler,
    UserSyncHandler,
)
from notification_relay.application.mailer import Mailer
from notification_relay.domain.events import (
    AuthEvent,
    LineItem,
    OrderEvent,
    ProductEvent,
    UnrecognizedEvent,
    UserDataSync,
    UserRecord,
)

from support import FakeProductIndex, InMemoryUsers, RecordingSender, make_user


def make_order(
    event_type: str = "order_placed",
    *,
    buyer_id: str = "1",
    seller_ids: tuple[str, ...] = ("7", "8"),
    titles: tuple[str, ...] = ("Widget", "Gadget"),
    quantities: tuple[int, ...] = (2, 1),
) -> OrderEvent:
    return OrderEvent(
        type=event_type,
        user_id=buyer_id,
        line_items=tuple(
            LineItem(seller_id=seller_id, title=title, quantity=quantity)
            for seller_id, title, quantity in zip(seller_ids, titles, quantities)
        ),
    )


class AuthHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def test_each_auth_event_sends_exactly_one_email(self) -> None:
        for event_type in ("user_created", "user_logged_in", "user_logged_out"):
            with self.subTest(event_type=event_type):
                sender = RecordingSender()
                handler = AuthEventHandler(
                    EnrichmentGateway(InMemoryUsers(make_user("3")), FakeProductIndex()),
                    Mailer(sender),
                )

                result = await handler(AuthEvent(type=event_type, user_id="3"))

                self.assertEqual(len(sender.sent), 1)
                self.assertEqual(sender.sent[0]["to_email"], "user3@example.com")
                self.assertTrue(result["deliveries"][0]["success"])

    async def test_user_created_subject_depends_on_role(self) -> None:
        users = InMemoryUsers(make_user("1", role="SHOP_OWNER"), make_user("2", role="CUSTOMER"))
        sender = RecordingSender()
        handler = AuthEventHandler(EnrichmentGateway(users, FakeProductIndex()), Mailer(sender))

        await handler(AuthEvent(type="user_created", user_id="1"))
        await handler(AuthEvent(type="user_created", user_id="2"))

        subjects = {item["to_email"]: item["subject"] for item in sender.sent}
        self.assertEqual(subjects["user1@example.com"], "Welcome, Shop Owner!")
        self.assertEqual(subjects["user2@example.com"], "Welcome to Our Service!")

    async def test_missing_user_is_a_silent_no_op(self) -> None:
        sender = RecordingSender()
        handler = AuthEventHandler(
            EnrichmentGateway(InMemoryUsers(), FakeProductIndex()), Mailer(sender)
        )

        result = await handler(AuthEvent(type="user_logged_in", user_id="404"))

        self.assertEqual(sender.sent, [])
        self.assertEqual(result["deliveries"], [])
        self.assertIn("user 404 not found", result["skipped"])

    async def test_store_failure_is_treated_as_not_found(self) -> None:
        sender = RecordingSender()
        users = InMemoryUsers(make_user("3"), failing_ids={"3"})
        handler = AuthEventHandler(EnrichmentGateway(users, FakeProductIndex()), Mailer(sender))

        result = await handler(AuthEvent(type="user_logged_in", user_id="3"))

        self.assertEqual(sender.sent, [])
        self.assertEqual(result["deliveries"], [])

    async def test_mail_failure_is_reported_not_raised(self) -> None:
        sender = RecordingSender(failing_recipients={"user3@example.com"})
        handler = AuthEventHandler(
            EnrichmentGateway(InMemoryUsers(make_user("3")), FakeProductIndex()), Mailer(sender)
        )

        result = await handler(AuthEvent(type="user_logged_out", user_id="3"))

        self.assertFalse(result["deliveries"][0]["success"])
        self.assertIn("mail provider unavailable", result["deliveries"][0]["error"])


class ProductHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def test_each_product_event_sends_one_seller_email(self) -> None:
        for event_type in ("product_created", "product_updated", "product_deleted"):
            with self.subTest(event_type=event_type):
                sender = RecordingSender()
                handler = ProductEventHandler(
                    EnrichmentGateway(InMemoryUsers(make_user("7")), FakeProductIndex()),
                    Mailer(sender),
                )

                await handler(ProductEvent(type=event_type, seller_id="7", title="Widget"))

                self.assertEqual(sender.recipients(), ["user7@example.com"])

    async def test_missing_seller_sends_nothing(self) -> None:
        sender = RecordingSender()
        handler = ProductEventHandler(
            EnrichmentGateway(InMemoryUsers(), FakeProductIndex()), Mailer(sender)
        )

        result = await handler(ProductEvent(type="product_created", seller_id="7", title="Widget"))

        self.assertEqual(sender.sent, [])
        self.assertIn("seller 7 not found", result["skipped"])


class OrderHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def test_sends_one_email_per_found_seller_plus_buyer(self) -> None:
        users = InMemoryUsers(make_user("1"), make_user("7"), make_user("8"))
        sender = RecordingSender()
        handler = OrderEventHandler(
            EnrichmentGateway(users, FakeProductIndex({"Widget": 10, "Gadget": 4})),
            Mailer(sender),
        )

        result = await handler(make_order())

        self.assertEqual(
            sender.recipients(),
            ["user1@example.com", "user7@example.com", "user8@example.com"],
        )
        self.assertEqual(len(result["deliveries"]), 3)
        buyer_email = next(item for item in sender.sent if item["to_email"] == "user1@example.com")
        self.assertEqual(buyer_email["subject"], "Order Placed")

    async def test_missing_seller_skips_only_that_line_item(self) -> None:
        users = InMemoryUsers(make_user("1"), make_user("7"))
        sender = RecordingSender()
        handler = OrderEventHandler(
            EnrichmentGateway(users, FakeProductIndex({"Widget": 10})), Mailer(sender)
        )

        result = await handler(make_order())

        self.assertEqual(sender.recipients(), ["user1@example.com", "user7@example.com"])
        self.assertIn("seller 8 not found", result["skipped"])

    async def test_missing_buyer_keeps_seller_emails(self) -> None:
        users = InMemoryUsers(make_user("7"), make_user("8"))
        sender = RecordingSender()
        handler = OrderEventHandler(EnrichmentGateway(users, FakeProductIndex()), Mailer(sender))

        result = await handler(make_order("order_updated"))

        self.assertEqual(sender.recipients(), ["user7@example.com", "user8@example.com"])
        self.assertIn("buyer 1 not found", result["skipped"])

    async def test_index_failure_still_sends_with_unknown_stock(self) -> None:
        users = InMemoryUsers(make_user("1"), make_user("7"))
        sender = RecordingSender()
        handler = OrderEventHandler(
            EnrichmentGateway(users, FakeProductIndex(fail=True)), Mailer(sender)
        )

        await handler(make_order(seller_ids=("7",), titles=("Widget",), quantities=(2,)))

        seller_email = next(item for item in sender.sent if item["to_email"] == "user7@example.com")
        self.assertIn("Remaining Stock:</b> Unknown", seller_email["html_body"])
        self.assertEqual(len(sender.sent), 2)

    async def test_failed_seller_send_does_not_abort_other_line_items(self) -> None:
        users = InMemoryUsers(make_user("1"), make_user("7"), make_user("8"))
        sender = RecordingSender(failing_recipients={"user7@example.com"})
        handler = OrderEventHandler(EnrichmentGateway(users, FakeProductIndex()), Mailer(sender))

        result = await handler(make_order("order_deleted"))

        self.assertEqual(sender.recipients(), ["user1@example.com", "user8@example.com"])
        failed = [item for item in result["deliveries"] if not item["success"]]
        self.assertEqual([item["recipient"] for item in failed], ["user7@example.com"])

    async def test_line_item_exception_is_contained(self) -> None:
        class FlakyGateway(EnrichmentGateway):
            async def fetch_product_quantity(self, title: str) -> int | None:
                if title == "Widget":
                    raise RuntimeError("unexpected")
                return await super().fetch_product_quantity(title)

        users = InMemoryUsers(make_user("1"), make_user("7"), make_user("8"))
        sender = RecordingSender()
        handler = OrderEventHandler(FlakyGateway(users, FakeProductIndex()), Mailer(sender))

        result = await handler(make_order())

        self.assertEqual(sender.recipients(), ["user1@example.com", "user8@example.com"])
        self.assertTrue(any("Widget" in reason for reason in result["skipped"]))

    async def test_buyer_and_line_item_lookups_overlap(self) -> None:
        # Buyer + two sellers + two stock lookups must all be waiting at once.
        barrier = asyncio.Barrier(5)

        class RendezvousGateway(EnrichmentGateway):
            async def fetch_user(self, user_id: str) -> UserRecord | None:
                await barrier.wait()
                return await super().fetch_user(user_id)

            async def fetch_product_quantity(self, title: str) -> int | None:
                await barrier.wait()
                return await super().fetch_product_quantity(title)

        users = InMemoryUsers(make_user("1"), make_user("7"), make_user("8"))
        sender = RecordingSender()
        handler = OrderEventHandler(
            RendezvousGateway(users, FakeProductIndex({"Widget": 3, "Gadget": 4})),
            Mailer(sender),
        )

        result = await asyncio.wait_for(handler(make_order()), timeout=1.0)

        self.assertEqual(
            sender.recipients(), ["user1@example.com", "user7@example.com", "user8@example.com"]
        )
        self.assertEqual(result["skipped"], [])

    async def test_looks_up_buyer_and_each_seller(self) -> None:
        users = InMemoryUsers(make_user("1"), make_user("7"))
        handler = OrderEventHandler(
            EnrichmentGateway(users, FakeProductIndex()), Mailer(RecordingSender())
        )

        await handler(make_order(seller_ids=("7",), titles=("Widget",), quantities=(2,)))

        self.assertIn("1", users.lookups)
        self.assertIn("7", users.lookups)


class UserSyncHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def test_repeated_sync_converges_to_latest_values(self) -> None:
        users = InMemoryUsers()
        handler = UserSyncHandler(users)
        first = UserRecord(id="5", username="sam", email="sam@example.com", role="CUSTOMER")
        latest = UserRecord(id="5", username="sam", email="sam@new.example.com", role="SHOP_OWNER")

        await handler(UserDataSync(user=first))
        await handler(UserDataSync(user=latest))
        await handler(UserDataSync(user=latest))

        self.assertEqual(users.users, {"5": latest})


class UnrecognizedEventTests(unittest.IsolatedAsyncioTestCase):
    async def test_every_handler_treats_foreign_types_as_handled(self) -> None:
        gateway = EnrichmentGateway(InMemoryUsers(make_user("1")), FakeProductIndex())
        sender = RecordingSender()
        handlers = [
            AuthEventHandler(gateway, Mailer(sender)),
            ProductEventHandler(gateway, Mailer(sender)),
            OrderEventHandler(gateway, Mailer(sender)),
            UserSyncHandler(InMemoryUsers()),
        ]

        for handler in handlers:
            result = await handler(UnrecognizedEvent(type="coupon_issued"))
            self.assertEqual(result["deliveries"], [])
            self.assertIn("unhandled event type 'coupon_issued'", result["skipped"])

        result = await handlers[2](AuthEvent(type="user_created", user_id="1"))
        self.assertEqual(result["deliveries"], [])
        self.assertEqual(sender.sent, [])


if __name__ == "__main__":
    unittest.main()
