from fastapi import APIRouter

from app.core.config import SettingsDep
from app.core.deadline import with_deadline
from app.dependencies import CurrentOwner, TaskServiceDep
from app.models import TaskCreate, TaskResponse, TaskUpdate

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=list[TaskResponse])
async def get_tasks(owner_id: CurrentOwner, service: TaskServiceDep, settings: SettingsDep):
    """List the caller's tasks"""
    return await with_deadline(
        service.fetch_collection(owner_id), settings.request_timeout_seconds
    )


@router.post("/create", response_model=TaskResponse)
async def create_task(
    task_data: TaskCreate,
    owner_id: CurrentOwner,
    service: TaskServiceDep,
    settings: SettingsDep,
):
    """Create a new task"""
    return await with_deadline(
        service.create(owner_id, task_data), settings.request_timeout_seconds
    )


@router.put("/update/{task_id}")
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    owner_id: CurrentOwner,
    service: TaskServiceDep,
    settings: SettingsDep,
):
    result = await with_deadline(
        service.update(owner_id, task_id, task_data), settings.update_timeout_seconds
    )
    return {
        "message": "1 record updated",
        "matched_count": result.matched_count,
        "modified_count": result.modified_count,
    }


@router.delete("/delete/{task_id}")
async def delete_task(
    task_id: str, owner_id: CurrentOwner, service: TaskServiceDep, settings: SettingsDep
):
    """Delete a task"""
    await with_deadline(service.delete(owner_id, task_id), settings.request_timeout_seconds)
    return {"message": f"task with id {task_id} deleted"}


@router.get("/search/{task_id}", response_model=TaskResponse)
async def search_task(
    task_id: str, owner_id: CurrentOwner, service: TaskServiceDep, settings: SettingsDep
):
    """Get a specific task by ID"""
    return await with_deadline(
        service.fetch_by_id(owner_id, task_id), settings.request_timeout_seconds
    )
