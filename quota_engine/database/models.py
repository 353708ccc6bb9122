"""
SQLAlchemy models for the quota analytics database.

Schema includes:
- Users and their resource groups (percentage quotas)
- Work records (raw focused-time activity)
- Simple tasks and routine tasks (the items that get ranked)
- Routine task instances and meeting instances (per-day occurrences)
- Daily analytics (derived per-day summaries, recomputable at any time)
- Task priorities (fully regenerated per user on each refresh)
- Cron job log (audit trail for nightly recomputation)
"""

from datetime import datetime, date
from typing import Optional, Dict
from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    Date,
    ForeignKey,
    JSON,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column
from sqlalchemy.sql import func
import enum


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ==================== ENUMS ====================

class TaskTargetTypeEnum(str, enum.Enum):
    SIMPLE = "simple"
    ROUTINE = "routine"


class RoutineInstanceStatusEnum(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class MeetingInstanceStatusEnum(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CronJobStatusEnum(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"


# ==================== USERS & RESOURCE GROUPS ====================

class UserDB(Base):
    """Application user."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class ResourceGroupDB(Base):
    """Named category of time allocation with an optional percentage quota."""
    __tablename__ = "resource_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    percentage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 0-100

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_resource_groups_user", "user_id"),
    )


# ==================== ACTIVITY ====================

class WorkRecordDB(Base):
    """One completed block of focused work. Source of truth for both aggregators."""
    __tablename__ = "work_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    task_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    task_name: Mapped[str] = mapped_column(String(500), nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    resource_group_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("resource_groups.id"), nullable=True
    )
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_work_records_user_completed", "user_id", "completed_at"),
        Index("idx_work_records_group", "resource_group_id"),
    )


# ==================== TASKS ====================

class SimpleTaskDB(Base):
    """One-off task."""
    __tablename__ = "simple_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="pending")
    resource_group_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("resource_groups.id"), nullable=True
    )
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_simple_tasks_user_status", "user_id", "status"),
    )


class RoutineTaskDB(Base):
    """Recurring task definition. Occurrence is decided by an external rule evaluator."""
    __tablename__ = "routine_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    resource_group_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("resource_groups.id"), nullable=True
    )
    recurrence_rule: Mapped[Optional[Dict]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_routine_tasks_user_active", "user_id", "is_active"),
    )


class RoutineTaskInstanceDB(Base):
    """A routine task scheduled on one calendar day."""
    __tablename__ = "routine_task_instances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    routine_task_id: Mapped[int] = mapped_column(Integer, ForeignKey("routine_tasks.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, completed, skipped
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    routine_task: Mapped["RoutineTaskDB"] = relationship("RoutineTaskDB")

    __table_args__ = (
        Index("idx_routine_instances_user_date", "user_id", "scheduled_date"),
    )


# ==================== MEETINGS ====================

class MeetingDB(Base):
    """Meeting definition (one-time or recurring)."""
    __tablename__ = "meetings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    meeting_type: Mapped[str] = mapped_column(String(20), default="one-time")  # recurring, one-time
    recurrence_rule: Mapped[Optional[Dict]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class MeetingInstanceDB(Base):
    """A meeting held (or scheduled) on one calendar day."""
    __tablename__ = "meeting_instances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    meeting_id: Mapped[int] = mapped_column(Integer, ForeignKey("meetings.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    actual_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # seconds

    __table_args__ = (
        Index("idx_meeting_instances_user_date", "user_id", "scheduled_date"),
    )


# ==================== DERIVED ANALYTICS ====================

class DailyAnalyticsDB(Base):
    """
    Pre-aggregated statistics for one user on one day.

    Always rebuilt from source rows, never edited by hand.
    total_work_duration == sum(work_duration_by_resource.values()).
    """
    __tablename__ = "daily_analytics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)

    # {"<resource_group_id>" | "null": seconds}
    work_duration_by_resource: Mapped[Dict[str, int]] = mapped_column(JSON, default=dict)
    total_work_duration: Mapped[int] = mapped_column(Integer, default=0)

    meeting_count: Mapped[int] = mapped_column(Integer, default=0)
    total_meeting_duration: Mapped[int] = mapped_column(Integer, default=0)

    routine_completed: Mapped[int] = mapped_column(Integer, default=0)
    routine_total: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_analytics_user_date"),
        Index("idx_daily_analytics_user_date", "user_id", "date"),
    )


class TaskPriorityDB(Base):
    """Priority score of one active task. Rows for a user are replaced as a set."""
    __tablename__ = "task_priorities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)  # simple, routine
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    priority_score: Mapped[int] = mapped_column(Integer, default=0)
    calculated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_task_priorities_user_score", "user_id", "priority_score"),
        Index("idx_task_priorities_target", "user_id", "target_type", "target_id"),
    )


class CronJobLogDB(Base):
    """Append-only record of nightly recomputation runs."""
    __tablename__ = "cron_job_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_run_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # completed, failed
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_cron_job_name_status", "job_name", "status", "last_run_date"),
    )
