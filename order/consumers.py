from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .notifications import user_group


class OrderNotificationConsumer(AsyncJsonWebsocketConsumer): # pushes order status changes to their owner
    async def connect(self):
        user = self.scope.get("user")

        if user is None or user.is_anonymous:
            await self.close()
            return
        self.group_name = user_group(user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, code):
        if getattr(self, "group_name", None):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def send_notification(self, event):
        await self.send_json(event["data"])
