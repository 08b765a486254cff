import uuid
from tortoise import fields, models


class User(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    email = fields.CharField(max_length=255, unique=True)
    display_name = fields.CharField(max_length=255, null=True)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)
    roles = fields.ManyToManyField("models.Role", related_name="users")

    class Meta:
        table = "users"

    def __str__(self):
        return self.display_name or self.email

    async def has_role(self, role_name: str) -> bool:
        roles = await self.roles.all()
        return any(role.name == role_name for role in roles)
