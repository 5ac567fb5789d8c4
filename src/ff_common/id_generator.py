"""ID helpers: row IDs are UUID4 strings (stored in VARCHAR(64) primary keys),
client order IDs are idempotency tokens sent with each submission."""

import uuid


def generate_id() -> str:
    return str(uuid.uuid4())


def client_order_id(order_id: str) -> str:
    return f"ff_{order_id}_{uuid.uuid4().hex[:12]}"
