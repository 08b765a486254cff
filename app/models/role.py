from tortoise import fields, models
from uuid import uuid4

ADMIN_ROLE = "admin"


class Role(models.Model):
    id = fields.UUIDField(pk=True, default=uuid4)
    name = fields.CharField(max_length=50, unique=True)
    description = fields.TextField(null=True)

    class Meta:
        table = "roles"
