from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_school_member, require_school_roles
from app.core.exceptions import UnauthorizedTransitionError
from app.models.schedule_change_request import RequestStatus
from app.models.user import User, UserRole
from app.schemas.common import ActionResult
from app.schemas.schedule_request import ScheduleRequestCreate, ScheduleRequestOut, ScheduleRequestReject
from app.services import change_requests
from app.services.transaction import commit

router = APIRouter()


def _teacher_profile_id(current_user: User) -> str:
    if not current_user.teacher_id:
        raise UnauthorizedTransitionError(
            "Teacher profile is not linked to this account",
            status_code=status.HTTP_403_FORBIDDEN,
        )
    return current_user.teacher_id


def _out(message: str, change_request) -> ActionResult[ScheduleRequestOut]:
    return ActionResult[ScheduleRequestOut](message=message, data=ScheduleRequestOut.model_validate(change_request))


@router.post(
    "/schools/{school_id}/schedule-requests",
    response_model=ActionResult[ScheduleRequestOut],
    status_code=status.HTTP_201_CREATED,
)
def submit_schedule_request(
    school_id: str,
    payload: ScheduleRequestCreate,
    current_user: User = Depends(require_school_roles(UserRole.teacher)),
    db: Session = Depends(get_db),
) -> ActionResult[ScheduleRequestOut]:
    change_request = change_requests.submit_request(
        db,
        school_id=school_id,
        lesson_id=payload.lesson_id,
        requesting_teacher_id=_teacher_profile_id(current_user),
        change_type=payload.requested_change_type,
        reason=payload.reason,
        proposed_day=payload.proposed_day,
        proposed_start_time=payload.proposed_start_time,
        proposed_end_time=payload.proposed_end_time,
        proposed_swap_teacher_id=payload.proposed_swap_teacher_id,
        actor=current_user,
    )
    commit(db)
    db.refresh(change_request)
    return _out("Schedule change request submitted successfully.", change_request)


@router.get("/schools/{school_id}/schedule-requests", response_model=ActionResult[list[ScheduleRequestOut]])
def list_schedule_requests(
    school_id: str,
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    include_all: bool = Query(default=False),
    current_user: User = Depends(get_school_member),
    db: Session = Depends(get_db),
) -> ActionResult[list[ScheduleRequestOut]]:
    if current_user.role == UserRole.admin:
        wanted = None if include_all else (status_filter or RequestStatus.pending)
        items = change_requests.list_requests(db, school_id=school_id, status=wanted)
    else:
        items = change_requests.list_teacher_requests(
            db,
            school_id=school_id,
            teacher_id=_teacher_profile_id(current_user),
        )
        if status_filter is not None:
            items = [item for item in items if item.status == status_filter]
    return ActionResult[list[ScheduleRequestOut]](
        message=f"{len(items)} request(s) found.",
        data=[ScheduleRequestOut.model_validate(item) for item in items],
    )


@router.post("/schools/{school_id}/schedule-requests/{request_id}/cancel", response_model=ActionResult[ScheduleRequestOut])
def cancel_schedule_request(
    school_id: str,
    request_id: str,
    current_user: User = Depends(require_school_roles(UserRole.teacher)),
    db: Session = Depends(get_db),
) -> ActionResult[ScheduleRequestOut]:
    change_request = change_requests.get_request(db, school_id=school_id, request_id=request_id, for_update=True)
    change_requests.cancel_request(
        db,
        change_request=change_request,
        teacher_id=current_user.teacher_id,
        actor=current_user,
    )
    commit(db)
    db.refresh(change_request)
    return _out("Request canceled successfully.", change_request)


@router.post("/schools/{school_id}/schedule-requests/{request_id}/reject", response_model=ActionResult[ScheduleRequestOut])
def reject_schedule_request(
    school_id: str,
    request_id: str,
    payload: ScheduleRequestReject,
    current_user: User = Depends(require_school_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ActionResult[ScheduleRequestOut]:
    change_request = change_requests.get_request(db, school_id=school_id, request_id=request_id, for_update=True)
    change_requests.reject_request(db, change_request=change_request, admin_notes=payload.admin_notes, actor=current_user)
    commit(db)
    db.refresh(change_request)
    return _out("Request rejected.", change_request)


@router.post("/schools/{school_id}/schedule-requests/{request_id}/approve", response_model=ActionResult[ScheduleRequestOut])
def approve_schedule_request(
    school_id: str,
    request_id: str,
    current_user: User = Depends(require_school_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ActionResult[ScheduleRequestOut]:
    change_request = change_requests.get_request(db, school_id=school_id, request_id=request_id, for_update=True)
    change_requests.approve_request(db, change_request=change_request, actor=current_user)
    commit(db)
    db.refresh(change_request)
    return _out("Request approved and lesson updated.", change_request)
