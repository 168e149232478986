from __future__ import annotations

from typing import Any, Optional

from bookledger.models.task import Task
from sqlalchemy import select
from sqlalchemy.orm import Session


def list_tasks(db: Session, *, owner_id: Optional[str] = None) -> list[Task]:
    stmt = select(Task)
    if owner_id is not None:
        stmt = stmt.where(Task.owner_id == owner_id)
    return list(db.execute(stmt.order_by(Task.created_at.asc())).scalars().all())


def get_task(db: Session, *, task_id: str, owner_id: Optional[str] = None) -> Optional[Task]:
    task = db.get(Task, task_id)
    if task is None:
        return None
    if owner_id is not None and task.owner_id != owner_id:
        return None
    return task


def create_task(db: Session, *, owner_id: str, fields: dict[str, Any]) -> Task:
    task = Task(owner_id=owner_id, **fields)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def update_task(db: Session, *, task: Task, fields: dict[str, Any]) -> Task:
    for key, value in fields.items():
        setattr(task, key, value)
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, *, task: Task) -> None:
    db.delete(task)
    db.commit()
