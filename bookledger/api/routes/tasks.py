from __future__ import annotations

from typing import Optional

from bookledger.api.deps import require_roles
from bookledger.crud.tasks import create_task, delete_task, get_task, list_tasks, update_task
from bookledger.db.session import get_db
from bookledger.models.task import Task
from bookledger.models.user import User
from bookledger.schemas.tasks import TaskIn, TaskOut
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

router = APIRouter(prefix="/v1", tags=["tasks"])

readers = require_roles("admin", "user", "guest")
writers = require_roles("admin", "user")


def _visible_owner(user: User) -> Optional[str]:
    # Plain users only see their own tasks; admins and guests see everything.
    return user.id if user.role == "user" else None


def _editable_task(db: Session, task_id: str, user: User) -> Task:
    owner = None if user.role == "admin" else user.id
    task = get_task(db, task_id=task_id, owner_id=owner)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("/tasks", response_model=list[TaskOut])
def get_tasks(db: Session = Depends(get_db), user: User = Depends(readers)):
    return list_tasks(db, owner_id=_visible_owner(user))


@router.get("/tasks/{task_id}", response_model=TaskOut)
def get_task_detail(task_id: str, db: Session = Depends(get_db), user: User = Depends(readers)):
    task = get_task(db, task_id=task_id, owner_id=_visible_owner(user))
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.post("/tasks", response_model=TaskOut)
def post_task(payload: TaskIn, db: Session = Depends(get_db), user: User = Depends(writers)):
    return create_task(db, owner_id=user.id, fields=payload.model_dump())


@router.put("/tasks/{task_id}", response_model=TaskOut)
def put_task(
    task_id: str,
    payload: TaskIn,
    db: Session = Depends(get_db),
    user: User = Depends(writers),
):
    task = _editable_task(db, task_id, user)
    return update_task(db, task=task, fields=payload.model_dump())


@router.delete("/tasks/{task_id}")
def remove_task(task_id: str, db: Session = Depends(get_db), user: User = Depends(writers)):
    task = _editable_task(db, task_id, user)
    delete_task(db, task=task)
    return {"message": "success"}
