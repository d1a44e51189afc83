"""
Cache key naming.

Collection entries are scoped by owner and point entries by task id, so two
owners never share an entry and every write can name exactly the keys it
makes stale.
"""

COLLECTION_PREFIX = "tasks:"
ITEM_PREFIX = "task:"


def tasks_key(owner_id: str) -> str:
    return f"{COLLECTION_PREFIX}{owner_id}"


def task_key(task_id: str) -> str:
    return f"{ITEM_PREFIX}{task_id}"
