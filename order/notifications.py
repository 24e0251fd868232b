from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer


def user_group(user_id):
    return f"user_{user_id}"


def notify_status_change(order):
    """Push the new status to the owner's websocket group."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(
        user_group(order.user_id),
        {
            "type": "send_notification", # Handler method name in consumer
            "data": {
                "order_id": order.id,
                "order_number": order.order_number,
                "status": order.status,
                "message": f"Your order {order.order_number} is now {order.status}",
            },
        },
    )
