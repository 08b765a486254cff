import pytest
from httpx import AsyncClient

from app.enums.notification_type import NotificationType
from app.enums.notification_channel import NotificationChannel
from app.models.user import User
from app.models.listing import Listing
from app.models.notification import Notification
from app.services.communication.notification_service import NotificationService
from app.services.finance.order_service import OrderService


@pytest.mark.asyncio
async def test_get_notifications(client: AsyncClient, buyer: User):
    """Test getting user notifications"""
    await Notification.create(
        user=buyer,
        notification_type=NotificationType.info,
        title="Test Notification 1",
        message="Test message 1",
        channel=NotificationChannel.in_app
    )
    await Notification.create(
        user=buyer,
        notification_type=NotificationType.outbid,
        title="Test Notification 2",
        message="Test message 2",
        channel=NotificationChannel.in_app,
        is_read=True
    )

    response = await client.get("/notifications/", params={"user_id": str(buyer.id)})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["unread_count"] == 1
    assert len(data["notifications"]) == 2


@pytest.mark.asyncio
async def test_get_unread_notifications(client: AsyncClient, buyer: User):
    """Test getting only unread notifications"""
    await Notification.create(
        user=buyer,
        notification_type=NotificationType.info,
        title="Unread",
        message="Unread message",
        is_read=False
    )
    await Notification.create(
        user=buyer,
        notification_type=NotificationType.info,
        title="Read",
        message="Read message",
        is_read=True
    )

    response = await client.get("/notifications/", params={"user_id": str(buyer.id), "unread_only": "true"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["notifications"][0]["title"] == "Unread"
    assert data["notifications"][0]["is_read"] is False


@pytest.mark.asyncio
async def test_mark_notification_as_read(client: AsyncClient, buyer: User):
    """Test marking a notification as read"""
    notification = await Notification.create(
        user=buyer,
        notification_type=NotificationType.info,
        title="Test",
        message="Test message",
        is_read=False
    )

    response = await client.put(
        f"/notifications/{notification.id}/read",
        params={"user_id": str(buyer.id)}
    )

    assert response.status_code == 200
    await notification.refresh_from_db()
    assert notification.is_read is True
    assert notification.read_at is not None


@pytest.mark.asyncio
async def test_cannot_read_other_users_notification(client: AsyncClient, buyer: User, seller: User):
    """Test that a notification is only visible to its owner"""
    notification = await Notification.create(
        user=buyer,
        notification_type=NotificationType.info,
        title="Private",
        message="Private message"
    )

    response = await client.put(
        f"/notifications/{notification.id}/read",
        params={"user_id": str(seller.id)}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_as_read(client: AsyncClient, buyer: User):
    """Test marking all notifications as read"""
    for i in range(3):
        await Notification.create(
            user=buyer,
            notification_type=NotificationType.info,
            title=f"Test {i}",
            message=f"Message {i}"
        )

    response = await client.put("/notifications/read-all", params={"user_id": str(buyer.id)})

    assert response.status_code == 200
    assert await Notification.filter(user_id=buyer.id, is_read=False).count() == 0


@pytest.mark.asyncio
async def test_notify_admins_only_reaches_admins(admin: User, buyer: User):
    sent = await NotificationService.notify_admins(
        NotificationType.operational_alert,
        title="Alert",
        message="Something needs attention"
    )

    assert sent == 1
    assert await Notification.filter(user_id=admin.id).count() == 1
    assert await Notification.filter(user_id=buyer.id).count() == 0


@pytest.mark.asyncio
async def test_dispatch_never_raises_for_missing_user(buyer: User):
    await buyer.delete()

    result = await NotificationService.dispatch(buyer.id, NotificationType.info, "Hello", "World")

    assert result is None


@pytest.mark.asyncio
async def test_notification_links_order(client: AsyncClient, buyer: User, listing: Listing, fees):
    order = await OrderService.create_order(listing.id, buyer.id)
    await OrderService.cancel_order(order.id)

    response = await client.get("/notifications/", params={"user_id": str(buyer.id)})

    data = response.json()
    assert data["total"] == 1
    assert data["notifications"][0]["notification_type"] == "order_cancelled"
    assert data["notifications"][0]["related_order_id"] == str(order.id)
