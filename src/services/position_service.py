"""
Position Service - job openings and their seat assignments.

Handles:
- Position CRUD, position code generation and drafts
- Assigning / removing jobseekers under the seat capacity
- Assignment status refresh (upcoming -> active -> completed)
- Reconciling positions.assigned_jobseekers with position_assignments

Capacity rule: a position with number_of_positions = N never has more
than N seat-holding (active or upcoming) assignments. The count and the
insert happen in one transaction while the position row is locked, so two
concurrent assignments cannot both take the last seat.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from audit.activity_logger import ActivityActionType, ActivityLogger
from config.settings import get_settings
from database.models import (
    AssignmentStatus,
    Client,
    JobseekerProfile,
    Position,
    PositionAssignment,
    PositionDraft,
    REQUIRED_DOCUMENT_KEYS,
    SEAT_HOLDING_STATUSES,
    VerificationStatus,
)
from notifications.email_triggers import StaffingEmailTriggers, get_email_triggers

from .draft_service import DraftService
from .exceptions import ConflictError, NotFoundError, ValidationFailedError
from .serializers import as_uuid, coerce_column_value, mapped_fields, row_to_dict

logger = logging.getLogger(__name__)

POSITION_CODE_DIGITS = 3

REQUIRED_POSITION_FIELDS = (
    "client_id",
    "title",
    "start_date",
    "employment_term",
    "employment_type",
    "position_category",
    "experience",
    "payrate_type",
    "number_of_positions",
    "regular_pay_rate",
    "bill_rate",
)

POSITION_FIELDS = mapped_fields(
    Position,
    exclude=(
        "id", "assigned_jobseekers", "client_name",
        "created_by_user_id", "updated_by_user_id", "created_at", "updated_at",
    ),
)


def assignment_status_for(start: date, today: Optional[date] = None) -> AssignmentStatus:
    """Initial status of a new assignment: upcoming if it starts after today."""
    today = today or date.today()
    return AssignmentStatus.UPCOMING if start > today else AssignmentStatus.ACTIVE


def next_position_code(short_code: str, existing_codes: List[str]) -> str:
    """
    Next code for a client: short code + zero-padded (max existing suffix + 1).

    Codes not starting with the short code or with a non-numeric suffix
    are ignored.

    Examples:
        >>> next_position_code("ACM", ["ACM001", "ACM007", "XYZ099"])
        'ACM008'
    """
    prefix = short_code.upper()
    highest = 0
    for code in existing_codes:
        if not code or not code.upper().startswith(prefix):
            continue
        suffix = code[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:0{POSITION_CODE_DIGITS}d}"


class PositionService:
    """Service for position and assignment operations."""

    def __init__(
        self,
        db: AsyncSession,
        email_triggers: Optional[StaffingEmailTriggers] = None,
    ):
        self.db = db
        self.activity = ActivityLogger(db)
        self.drafts = DraftService(db, PositionDraft, "Position")
        self.email_triggers = email_triggers or get_email_triggers()

    # =========================================================================
    # POSITION CODES
    # =========================================================================

    async def generate_position_code(self, client_id) -> Dict[str, str]:
        """
        Propose the next position code for a client.

        Raises:
            NotFoundError: Unknown client
            ValidationFailedError: Client has no short code
        """
        client = await self._get_client(client_id)
        if not client.short_code:
            raise ValidationFailedError(
                "Client has no short code; set one before creating positions"
            )

        codes = list((await self.db.execute(
            select(Position.position_code).where(Position.client_id == client.id)
        )).scalars().all())
        codes += list((await self.db.execute(
            select(PositionDraft.position_code).where(PositionDraft.client_id == client.id)
        )).scalars().all())

        return {
            "position_code": next_position_code(client.short_code, codes),
            "client_short_code": client.short_code,
        }

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_positions(
        self,
        search: Optional[str] = None,
        title: Optional[str] = None,
        client_id=None,
        position_code: Optional[str] = None,
        employment_type: Optional[str] = None,
        employment_term: Optional[str] = None,
        position_category: Optional[str] = None,
        start_date: Optional[date] = None,
        show_on_job_portal: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """List positions (newest first); each returned row is reconciled first."""
        conditions = []
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(
                Position.title.ilike(pattern),
                Position.position_code.ilike(pattern),
                Position.client_name.ilike(pattern),
                Position.city.ilike(pattern),
            ))
        if title:
            conditions.append(Position.title.ilike(f"%{title}%"))
        if client_id:
            conditions.append(Position.client_id == as_uuid(client_id))
        if position_code:
            conditions.append(Position.position_code.ilike(f"%{position_code}%"))
        if employment_type:
            conditions.append(Position.employment_type == employment_type)
        if employment_term:
            conditions.append(Position.employment_term == employment_term)
        if position_category:
            conditions.append(Position.position_category == position_category)
        if start_date:
            conditions.append(Position.start_date == start_date)
        if show_on_job_portal is not None:
            conditions.append(Position.show_on_job_portal == show_on_job_portal)

        count_query = select(func.count(Position.id))
        query = select(Position)
        if conditions:
            count_query = count_query.where(*conditions)
            query = query.where(*conditions)

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(Position.created_at.desc()).offset(offset).limit(limit)
        )
        positions = result.scalars().all()

        if positions:
            await self.refresh_assignment_statuses()
        repaired = 0
        for position in positions:
            if await self.reconcile_assigned_jobseekers(position):
                repaired += 1
        if repaired:
            await self.db.commit()

        return [self._position_to_dict(p) for p in positions], total

    async def get_position(self, position_id, for_update: bool = False) -> Position:
        query = select(Position).where(Position.id == as_uuid(position_id))
        if for_update:
            query = query.with_for_update()
        position = (await self.db.execute(query)).scalar_one_or_none()
        if position is None:
            raise NotFoundError("Position", position_id)
        return position

    async def get_position_dict(self, position_id) -> Dict[str, Any]:
        position = await self.get_position(position_id)
        await self.refresh_assignment_statuses()
        if await self.reconcile_assigned_jobseekers(position):
            await self.db.commit()
        return self._position_to_dict(position)

    async def list_client_positions(self, client_id, limit: int = 50, offset: int = 0):
        await self._get_client(client_id)
        return await self.list_positions(client_id=client_id, limit=limit, offset=offset)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create_position(
        self,
        data: Dict[str, Any],
        user,
        draft_id=None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Create a position.

        Raises:
            NotFoundError: Unknown client
            ValidationFailedError: Missing fields, bad dates, no documents
            ConflictError: position_code already in use
        """
        today = today or date.today()
        values = self._normalize(data)

        missing = [f for f in REQUIRED_POSITION_FIELDS if values.get(f) in (None, "")]
        if missing:
            raise ValidationFailedError(
                f"Missing required fields: {', '.join(missing)}",
                {"fields": missing},
            )

        client = await self._get_client(values["client_id"])

        if values["start_date"] < today:
            raise ValidationFailedError("start_date cannot be in the past", {"field": "start_date"})
        self._validate_position_values(values)

        requested_code = (values.pop("position_code", None) or "").strip().upper()
        if requested_code:
            exists = (await self.db.execute(
                select(Position.id).where(Position.position_code == requested_code)
            )).first()
            if exists:
                raise ConflictError(f"Position code {requested_code} is already in use")
            position_code = requested_code
        else:
            position_code = (await self.generate_position_code(client.id))["position_code"]

        position = Position(
            **values,
            position_code=position_code,
            client_name=client.company_name,
            assigned_jobseekers=[],
            created_by_user_id=user.user_id,
            updated_by_user_id=user.user_id,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self.db.add(position)
        await self.db.flush()

        if draft_id:
            await self.drafts.consume_draft(draft_id, user)

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.CREATE_POSITION,
            primary_entity=("position", position.id, position.title),
            secondary_entity=("client", client.id, client.company_name),
            display_message=f"{user.full_name} created position {position.title} for {client.company_name}",
            metadata={"position_code": position.position_code},
        )
        await self.db.commit()

        logger.info(f"Position created: {position.position_code} ({position.id})")
        return self._position_to_dict(position)

    async def update_position(
        self,
        position_id,
        data: Dict[str, Any],
        user,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Partial update.

        Raises:
            ConflictError: Capacity below current seat count, or code clash
        """
        today = today or date.today()
        position = await self.get_position(position_id, for_update=True)
        # seats freed by assignments that have ended since the last refresh
        await self._advance_statuses(today, position.id)
        values = self._normalize(data)

        for field in REQUIRED_POSITION_FIELDS:
            if field in values and values[field] in (None, ""):
                raise ValidationFailedError(f"{field} cannot be empty", {"field": field})

        if "start_date" in values and values["start_date"] != position.start_date:
            if values["start_date"] < today:
                raise ValidationFailedError("start_date cannot be in the past", {"field": "start_date"})

        merged = {f: getattr(position, f) for f in POSITION_FIELDS}
        merged.update(values)
        self._validate_position_values(merged)
        if "overtime_hours" not in values and merged.get("overtime_hours") != position.overtime_hours:
            values["overtime_hours"] = merged["overtime_hours"]

        if "number_of_positions" in values:
            seats = await self._count_seats(position.id)
            if values["number_of_positions"] < seats:
                raise ConflictError(
                    f"Cannot reduce positions to {values['number_of_positions']}: "
                    f"{seats} jobseeker(s) already assigned",
                    {"assigned": seats},
                )

        if "client_id" in values and values["client_id"] != position.client_id:
            client = await self._get_client(values["client_id"])
            position.client_name = client.company_name

        if values.get("position_code"):
            values["position_code"] = values["position_code"].strip().upper()
            if values["position_code"] != position.position_code:
                clash = (await self.db.execute(
                    select(Position.id).where(
                        Position.position_code == values["position_code"],
                        Position.id != position.id,
                    )
                )).first()
                if clash:
                    raise ConflictError(f"Position code {values['position_code']} is already in use")

        changed = []
        for key, value in values.items():
            if getattr(position, key) != value:
                setattr(position, key, value)
                changed.append(key)
        position.updated_by_user_id = user.user_id
        position.updated_at = datetime.utcnow()

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.UPDATE_POSITION,
            primary_entity=("position", position.id, position.title),
            display_message=f"{user.full_name} updated position {position.title}",
            metadata={"changed_fields": changed},
        )
        await self.db.commit()
        return self._position_to_dict(position)

    async def delete_position(self, position_id, user) -> None:
        """
        Delete a position with no seat-holding assignments.

        Raises:
            ConflictError: Jobseekers are still assigned
        """
        position = await self.get_position(position_id, for_update=True)
        await self._advance_statuses(date.today(), position.id)
        seats = await self._count_seats(position.id)
        if seats:
            raise ConflictError(
                f"Cannot delete position with {seats} assigned jobseeker(s); remove them first",
                {"assigned": seats},
            )

        title = position.title
        await self.db.delete(position)
        self.activity.log(
            actor=user,
            action_type=ActivityActionType.DELETE_POSITION,
            primary_entity=("position", position_id, title),
            display_message=f"{user.full_name} deleted position {title}",
        )
        await self.db.commit()
        logger.info(f"Position deleted: {title} ({position_id})")

    # =========================================================================
    # ASSIGNMENTS
    # =========================================================================

    async def assign_jobseeker(
        self,
        position_id,
        candidate_id,
        user,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Give a verified jobseeker one of the position's seats.

        Raises:
            NotFoundError: Unknown position or jobseeker
            ValidationFailedError: Jobseeker not verified, bad dates
            ConflictError: Already assigned, or position full
        """
        today = today or date.today()
        candidate_id = as_uuid(candidate_id)

        position = await self.get_position(position_id, for_update=True)
        await self._advance_statuses(today, position.id)
        jobseeker = await self._get_jobseeker_by_user(candidate_id)
        if jobseeker.verification_status != VerificationStatus.VERIFIED.value:
            raise ValidationFailedError("Only verified jobseekers can be assigned to positions")

        held = (await self.db.execute(
            select(PositionAssignment.id).where(
                PositionAssignment.position_id == position.id,
                PositionAssignment.candidate_id == candidate_id,
                PositionAssignment.status.in_(SEAT_HOLDING_STATUSES),
            )
        )).first()
        if held:
            raise ConflictError("Jobseeker is already assigned to this position")

        seats = await self._count_seats(position.id)
        if seats >= position.number_of_positions:
            raise ConflictError(
                "Position is full",
                {"assigned": seats, "number_of_positions": position.number_of_positions},
            )

        start = start_date or position.start_date
        end = end_date if end_date is not None else position.end_date
        if end is not None and end < start:
            raise ValidationFailedError("end_date cannot be before start_date")

        assignment = PositionAssignment(
            position_id=position.id,
            candidate_id=candidate_id,
            start_date=start,
            end_date=end,
            status=assignment_status_for(start, today).value,
            created_by_user_id=user.user_id,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self.db.add(assignment)
        await self.db.flush()
        await self.reconcile_assigned_jobseekers(position)

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.ASSIGN_JOBSEEKER,
            primary_entity=("jobseeker", jobseeker.user_id, jobseeker.full_name),
            secondary_entity=("position", position.id, position.title),
            tertiary_entity=("client", position.client_id, position.client_name),
            display_message=(
                f"{user.full_name} assigned {jobseeker.full_name} to {position.title}"
                f" at {position.client_name}"
            ),
            metadata={"assignment_id": str(assignment.id), "status": assignment.status},
        )
        await self.db.commit()

        logger.info(f"Jobseeker {candidate_id} assigned to position {position.id} ({assignment.status})")
        await self.email_triggers.send_jobseeker_assignment(jobseeker, position)

        return {
            "success": True,
            "assigned_jobseekers": list(position.assigned_jobseekers),
            "assignment": self._assignment_to_dict(assignment),
        }

    async def remove_jobseeker(self, position_id, candidate_id, user) -> Dict[str, Any]:
        """
        Cancel a jobseeker's seat on a position.

        Raises:
            NotFoundError: Unknown position, or no seat held
        """
        candidate_id = as_uuid(candidate_id)
        position = await self.get_position(position_id, for_update=True)

        assignment = (await self.db.execute(
            select(PositionAssignment).where(
                PositionAssignment.position_id == position.id,
                PositionAssignment.candidate_id == candidate_id,
                PositionAssignment.status.in_(SEAT_HOLDING_STATUSES),
            )
        )).scalars().first()
        if assignment is None:
            raise NotFoundError("Assignment", f"{candidate_id} on position {position.id}")

        assignment.status = AssignmentStatus.CANCELLED.value
        assignment.cancelled_at = datetime.utcnow()
        assignment.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.reconcile_assigned_jobseekers(position)

        jobseeker = (await self.db.execute(
            select(JobseekerProfile).where(JobseekerProfile.user_id == candidate_id)
        )).scalar_one_or_none()
        name = jobseeker.full_name if jobseeker else str(candidate_id)

        self.activity.log(
            actor=user,
            action_type=ActivityActionType.REMOVE_JOBSEEKER,
            primary_entity=("jobseeker", candidate_id, name),
            secondary_entity=("position", position.id, position.title),
            tertiary_entity=("client", position.client_id, position.client_name),
            display_message=f"{user.full_name} removed {name} from {position.title} at {position.client_name}",
            metadata={"assignment_id": str(assignment.id)},
        )
        await self.db.commit()

        if jobseeker is not None:
            await self.email_triggers.send_jobseeker_removal(jobseeker, position)

        return {
            "success": True,
            "assigned_jobseekers": list(position.assigned_jobseekers),
            "assignment": self._assignment_to_dict(assignment),
        }

    async def list_position_assignments(self, position_id) -> List[Dict[str, Any]]:
        """All assignments of a position (any status) with jobseeker details."""
        position = await self.get_position(position_id)
        await self.refresh_assignment_statuses()

        result = await self.db.execute(
            select(PositionAssignment, JobseekerProfile)
            .outerjoin(JobseekerProfile, JobseekerProfile.user_id == PositionAssignment.candidate_id)
            .where(PositionAssignment.position_id == position.id)
            .order_by(PositionAssignment.created_at.desc())
        )

        items = []
        for assignment, jobseeker in result.all():
            item = self._assignment_to_dict(assignment)
            item["jobseeker"] = _jobseeker_summary(jobseeker)
            items.append(item)
        return items

    async def list_candidate_assignments(
        self,
        candidate_id,
        search: Optional[str] = None,
        status: Optional[str] = None,
        position_id=None,
        on_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int, Dict[str, int]]:
        """
        A candidate's assignments with position details.

        Returns:
            (items, total matching, status counts over all the candidate's
            non-cancelled assignments)
        """
        candidate_id = as_uuid(candidate_id)
        await self.refresh_assignment_statuses()

        conditions = [PositionAssignment.candidate_id == candidate_id]
        if status:
            conditions.append(PositionAssignment.status == status)
        if position_id:
            conditions.append(PositionAssignment.position_id == as_uuid(position_id))
        if on_date:
            conditions.append(PositionAssignment.start_date <= on_date)
            conditions.append(or_(
                PositionAssignment.end_date.is_(None),
                PositionAssignment.end_date >= on_date,
            ))
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(
                Position.title.ilike(pattern),
                Position.client_name.ilike(pattern),
                Position.position_code.ilike(pattern),
                Position.city.ilike(pattern),
            ))

        base = (
            select(PositionAssignment, Position)
            .join(Position, Position.id == PositionAssignment.position_id)
            .where(*conditions)
        )
        total = (await self.db.execute(
            select(func.count(PositionAssignment.id))
            .select_from(PositionAssignment)
            .join(Position, Position.id == PositionAssignment.position_id)
            .where(*conditions)
        )).scalar() or 0

        result = await self.db.execute(
            base.order_by(PositionAssignment.start_date.desc()).offset(offset).limit(limit)
        )
        items = []
        for assignment, position in result.all():
            item = self._assignment_to_dict(assignment)
            item["position"] = {
                "id": str(position.id),
                "title": position.title,
                "position_code": position.position_code,
                "client_id": str(position.client_id),
                "client_name": position.client_name,
                "city": position.city,
                "province": position.province,
                "employment_type": position.employment_type,
                "employment_term": position.employment_term,
                "start_date": position.start_date.isoformat() if position.start_date else None,
                "end_date": position.end_date.isoformat() if position.end_date else None,
            }
            items.append(item)

        counts_result = await self.db.execute(
            select(PositionAssignment.status, func.count(PositionAssignment.id))
            .where(PositionAssignment.candidate_id == candidate_id)
            .group_by(PositionAssignment.status)
        )
        by_status = {row[0]: row[1] for row in counts_result.all()}
        status_counts = {
            "active": by_status.get(AssignmentStatus.ACTIVE.value, 0),
            "completed": by_status.get(AssignmentStatus.COMPLETED.value, 0),
            "upcoming": by_status.get(AssignmentStatus.UPCOMING.value, 0),
        }
        status_counts["total"] = sum(status_counts.values())

        return items, total, status_counts

    # =========================================================================
    # STATUS REFRESH & RECONCILIATION
    # =========================================================================

    async def refresh_assignment_statuses(self, today: Optional[date] = None) -> int:
        """
        Move assignments along their lifecycle by date.

        upcoming rows that have started become active; active rows whose
        end date has passed become completed.

        Returns:
            Number of rows changed
        """
        changed = await self._advance_statuses(today or date.today())
        if changed:
            await self.db.commit()
            logger.info(f"Assignment statuses refreshed: {changed} row(s) changed")
        return changed

    async def _advance_statuses(self, today: date, position_id=None) -> int:
        """Date-driven status updates in the current transaction (no commit)."""
        now = datetime.utcnow()
        scope = [PositionAssignment.position_id == position_id] if position_id is not None else []

        started = await self.db.execute(
            update(PositionAssignment)
            .where(
                PositionAssignment.status == AssignmentStatus.UPCOMING.value,
                PositionAssignment.start_date <= today,
                *scope,
            )
            .values(status=AssignmentStatus.ACTIVE.value, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        finished = await self.db.execute(
            update(PositionAssignment)
            .where(
                PositionAssignment.status == AssignmentStatus.ACTIVE.value,
                PositionAssignment.end_date.is_not(None),
                PositionAssignment.end_date < today,
                *scope,
            )
            .values(status=AssignmentStatus.COMPLETED.value, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        return (started.rowcount or 0) + (finished.rowcount or 0)

    async def reconcile_assigned_jobseekers(self, position: Position) -> bool:
        """
        Rewrite position.assigned_jobseekers from the seat-holding assignments.

        The list is the sorted, de-duplicated candidate ids (as strings).
        The row is only touched when the stored list differs.

        Returns:
            True if the position was updated (caller commits)
        """
        result = await self.db.execute(
            select(PositionAssignment.candidate_id).where(
                PositionAssignment.position_id == position.id,
                PositionAssignment.status.in_(SEAT_HOLDING_STATUSES),
            )
        )
        expected = sorted({str(cid) for cid in result.scalars().all()})
        current = list(position.assigned_jobseekers or [])

        if current == expected:
            return False

        logger.info(
            f"Reconciling assigned_jobseekers on position {position.id}: "
            f"{len(current)} -> {len(expected)}"
        )
        # JSON columns are change-tracked by assignment only
        position.assigned_jobseekers = expected
        return True

    async def reconcile_all(self) -> int:
        """Repair assigned_jobseekers on every position; returns the number fixed."""
        await self.refresh_assignment_statuses()
        result = await self.db.execute(select(Position))
        repaired = 0
        for position in result.scalars().all():
            if await self.reconcile_assigned_jobseekers(position):
                repaired += 1
        if repaired:
            await self.db.commit()
        logger.info(f"Reconciled {repaired} position(s)")
        return repaired

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _count_seats(self, position_id) -> int:
        return (await self.db.execute(
            select(func.count(PositionAssignment.id)).where(
                PositionAssignment.position_id == position_id,
                PositionAssignment.status.in_(SEAT_HOLDING_STATUSES),
            )
        )).scalar() or 0

    async def _get_client(self, client_id) -> Client:
        client = await self.db.get(Client, as_uuid(client_id))
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    async def _get_jobseeker_by_user(self, user_id) -> JobseekerProfile:
        jobseeker = (await self.db.execute(
            select(JobseekerProfile).where(JobseekerProfile.user_id == as_uuid(user_id))
        )).scalar_one_or_none()
        if jobseeker is None:
            raise NotFoundError("Jobseeker", user_id)
        return jobseeker

    @staticmethod
    def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, value in data.items():
            if key not in POSITION_FIELDS:
                continue
            if isinstance(value, str):
                value = value.strip()
            if hasattr(value, "value") and not isinstance(value, (str, int, float)):
                value = value.value
            values[key] = value

        if "documents_required" in values and values["documents_required"] is not None:
            docs = values["documents_required"]
            if hasattr(docs, "model_dump"):
                docs = docs.model_dump()
            values["documents_required"] = {
                key: bool(docs.get(key, False)) for key in REQUIRED_DOCUMENT_KEYS
            }

        try:
            return {k: coerce_column_value(Position, k, v) if k != "documents_required" else v
                    for k, v in values.items()}
        except (TypeError, ValueError) as e:
            raise ValidationFailedError(f"Invalid position data: {e}")

    @staticmethod
    def _validate_position_values(values: Dict[str, Any]) -> None:
        """Rules that apply to a complete set of position values."""
        start, end = values.get("start_date"), values.get("end_date")
        if start and end and end <= start:
            raise ValidationFailedError("end_date must be after start_date", {"field": "end_date"})

        if (values.get("number_of_positions") or 0) < 1:
            raise ValidationFailedError("number_of_positions must be at least 1")

        for field in ("regular_pay_rate", "bill_rate", "overtime_pay_rate", "overtime_bill_rate", "markup"):
            if values.get(field) is not None and values[field] < 0:
                raise ValidationFailedError(f"{field} cannot be negative", {"field": field})

        docs = values.get("documents_required") or {}
        if not any(docs.values()):
            raise ValidationFailedError(
                "At least one required document must be selected",
                {"field": "documents_required"},
            )

        if values.get("overtime_enabled"):
            if values.get("overtime_hours") is None:
                values["overtime_hours"] = coerce_column_value(
                    Position, "overtime_hours", get_settings().default_overtime_threshold
                )
            elif values["overtime_hours"] < 0:
                raise ValidationFailedError("overtime_hours cannot be negative")

    @staticmethod
    def _assignment_to_dict(assignment: PositionAssignment) -> Dict[str, Any]:
        return row_to_dict(assignment)

    @staticmethod
    def _position_to_dict(position: Position) -> Dict[str, Any]:
        data = row_to_dict(position)
        data["assigned_jobseekers"] = list(position.assigned_jobseekers or [])
        return data


def _jobseeker_summary(jobseeker: Optional[JobseekerProfile]) -> Optional[Dict[str, Any]]:
    if jobseeker is None:
        return None
    return {
        "id": str(jobseeker.id),
        "user_id": str(jobseeker.user_id),
        "first_name": jobseeker.first_name,
        "last_name": jobseeker.last_name,
        "email": jobseeker.email,
        "mobile": jobseeker.mobile,
        "city": jobseeker.city,
        "province": jobseeker.province,
        "employee_id": jobseeker.employee_id,
    }
