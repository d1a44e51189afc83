import logging
from datetime import datetime, timezone

from app.cache.decorators import cached, invalidates
from app.cache.keys import task_key, tasks_key
from app.cache.layer import CacheLayer
from app.core.errors import NotFoundError
from app.ids import parse_object_id
from app.models import Task, TaskCreate, TaskResponse, TaskUpdate, UpdateResult
from app.store import DocumentStore

logger = logging.getLogger(__name__)


class TaskService:
    """
    Task reads and writes through the cache-aside layer.

    Reads are cached per owner (``tasks:<owner>``) and per task
    (``task:<id>``). Each write invalidates the keys it can make stale, after
    the store has accepted it. Reads and writes are not locked against each
    other: a populate racing an invalidation can leave a pre-write snapshot
    in the cache until the next write or TTL.
    """

    def __init__(self, store: DocumentStore[Task], cache: CacheLayer):
        self.store = store
        self.cache = cache

    @cached(lambda owner_id, *_, **__: tasks_key(owner_id), list[TaskResponse])
    async def fetch_collection(self, owner_id: str):
        return await self.store.scan(owner_id=owner_id)

    @cached(lambda task_id, *_, **__: task_key(task_id), TaskResponse)
    async def _load_task(self, task_id: str):
        return await self.store.find_one(id=task_id)

    async def fetch_by_id(self, owner_id: str, task_id: str) -> TaskResponse:
        task_id = parse_object_id(task_id)
        task = await self._load_task(task_id)
        # the point entry is shared, so ownership is checked on hits too
        if task is None or task.owner_id != owner_id:
            raise NotFoundError(f"Task with id {task_id} not found")
        return task

    @invalidates(lambda owner_id, *_, **__: tasks_key(owner_id))
    async def create(self, owner_id: str, task_data: TaskCreate) -> TaskResponse:
        task = Task.model_validate(task_data, update={"owner_id": owner_id})
        task = await self.store.insert_one(task)
        logger.info(f"Created task {task.id} for owner {owner_id}")
        return TaskResponse.model_validate(task)

    async def update(
        self, owner_id: str, task_id: str, task_data: TaskUpdate
    ) -> UpdateResult:
        return await self._update(owner_id, parse_object_id(task_id), task_data)

    @invalidates(
        lambda owner_id, *_, **__: tasks_key(owner_id),
        lambda owner_id, task_id, *_, **__: task_key(task_id),
    )
    async def _update(self, owner_id: str, task_id: str, task_data: TaskUpdate):
        # null means "leave unchanged"; every column is NOT NULL
        fields = task_data.model_dump(exclude_none=True)
        fields["updated_at"] = datetime.now(timezone.utc)
        result = await self.store.update_one({"id": task_id, "owner_id": owner_id}, fields)
        logger.info(
            f"Matched {result.matched_count} and modified {result.modified_count} "
            f"tasks for id {task_id}"
        )
        if result.matched_count == 0:
            raise NotFoundError(f"No record found with id {task_id}")
        return result

    async def delete(self, owner_id: str, task_id: str) -> None:
        await self._delete(owner_id, parse_object_id(task_id))

    @invalidates(
        lambda owner_id, *_, **__: tasks_key(owner_id),
        lambda owner_id, task_id, *_, **__: task_key(task_id),
    )
    async def _delete(self, owner_id: str, task_id: str):
        deleted = await self.store.delete_one(id=task_id, owner_id=owner_id)
        if not deleted:
            raise NotFoundError(f"No record found with id {task_id}")
        logger.info(f"Deleted task {task_id} for owner {owner_id}")
