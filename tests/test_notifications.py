from __future__ import annotations

import pytest

from sellah.core.notifications import NotificationService, status_message
from sellah.errors import NotificationNotFoundError


def _notify(service: NotificationService, context, receiver: str = "customer-1", order_id: str = "o-1"):  # noqa: ANN001,ANN202
    notification = service.build_status_notification(
        order_id=order_id,
        order_number="SL-20260101-ABCDEF",
        customer_id=receiver,
        old_status="approved",
        new_status="processing",
        sender_id="admin-1",
    )
    return service.create(context, notification)


def test_status_message_falls_back_for_unknown_status() -> None:
    assert status_message("shipped") == "Your order has been shipped and is on its way."
    assert status_message("on_hold") == "Your order status has been updated to on hold."


def test_list_and_mark_as_read(store, context) -> None:  # noqa: ANN001
    service = NotificationService(store)
    first = _notify(service, context)
    _notify(service, context, order_id="o-2")
    _notify(service, context, receiver="customer-2")

    assert len(service.list_for_user(context, "customer-1")) == 2

    read = service.mark_as_read(context, first.id, "customer-1")

    assert read.is_read is True
    assert [n.order_id for n in service.list_for_user(context, "customer-1", unread_only=True)] == ["o-2"]
    assert service.mark_all_as_read(context, "customer-1") == 1
    assert service.list_for_user(context, "customer-1", unread_only=True) == []
    assert len(service.list_for_user(context, "customer-2", unread_only=True)) == 1


def test_only_receiver_can_mark_as_read(store, context) -> None:  # noqa: ANN001
    service = NotificationService(store)
    notification = _notify(service, context)

    with pytest.raises(NotificationNotFoundError):
        service.mark_as_read(context, notification.id, "someone-else")
    with pytest.raises(NotificationNotFoundError):
        service.mark_as_read(context, "missing", "customer-1")

    assert service.list_for_user(context, "customer-1")[0].is_read is False


def test_payment_notification_carries_amount() -> None:
    notification = NotificationService.build_payment_notification(
        order_id="o-1",
        order_number="SL-1",
        customer_id="customer-1",
        payment_status="rejected",
        amount=250.0,
        currency="PHP",
        sender_id="admin-1",
    )

    assert notification.title == "Payment Rejected - SL-1"
    assert notification.type.value == "Payment"
    assert notification.metadata["amount"] == 250.0
