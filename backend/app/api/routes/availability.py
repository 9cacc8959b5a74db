from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_school_member
from app.core.exceptions import UnauthorizedTransitionError
from app.models.lesson import Weekday
from app.models.user import User, UserRole
from app.schemas.availability import UnavailabilityCreate, UnavailabilityOut, UnavailabilityUpdate
from app.schemas.common import ActionResult
from app.services import availability
from app.services.transaction import commit

router = APIRouter()


def _ensure_can_manage(current_user: User, teacher_id: str) -> None:
    if current_user.role == UserRole.admin:
        return
    if current_user.teacher_id != teacher_id:
        raise UnauthorizedTransitionError(
            "You can only manage your own unavailability blocks.",
            status_code=403,
            details={"teacher_id": teacher_id},
        )


@router.get(
    "/schools/{school_id}/teachers/{teacher_id}/unavailability",
    response_model=ActionResult[list[UnavailabilityOut]],
)
def list_unavailability(
    school_id: str,
    teacher_id: str,
    day: Weekday | None = Query(default=None),
    current_user: User = Depends(get_school_member),
    db: Session = Depends(get_db),
) -> ActionResult[list[UnavailabilityOut]]:
    blocks = availability.list_unavailable(db, school_id=school_id, teacher_id=teacher_id, day=day)
    return ActionResult[list[UnavailabilityOut]](
        message=f"{len(blocks)} unavailability block(s) found.",
        data=[UnavailabilityOut.model_validate(item) for item in blocks],
    )


@router.post(
    "/schools/{school_id}/teachers/{teacher_id}/unavailability",
    response_model=ActionResult[UnavailabilityOut],
    status_code=status.HTTP_201_CREATED,
)
def create_unavailability(
    school_id: str,
    teacher_id: str,
    payload: UnavailabilityCreate,
    current_user: User = Depends(get_school_member),
    db: Session = Depends(get_db),
) -> ActionResult[UnavailabilityOut]:
    _ensure_can_manage(current_user, teacher_id)
    block = availability.create_block(
        db,
        school_id=school_id,
        teacher_id=teacher_id,
        day=payload.day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        notes=payload.notes,
        actor=current_user,
    )
    commit(db)
    db.refresh(block)
    return ActionResult[UnavailabilityOut](
        message="Unavailability block created successfully.",
        data=UnavailabilityOut.model_validate(block),
    )


@router.put("/schools/{school_id}/unavailability/{block_id}", response_model=ActionResult[UnavailabilityOut])
def update_unavailability(
    school_id: str,
    block_id: str,
    payload: UnavailabilityUpdate,
    current_user: User = Depends(get_school_member),
    db: Session = Depends(get_db),
) -> ActionResult[UnavailabilityOut]:
    block = availability.get_block(db, school_id=school_id, block_id=block_id)
    _ensure_can_manage(current_user, block.teacher_id)
    block = availability.update_block(
        db,
        block=block,
        day=payload.day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        notes=payload.notes,
        actor=current_user,
    )
    commit(db)
    db.refresh(block)
    return ActionResult[UnavailabilityOut](
        message="Unavailability block updated successfully.",
        data=UnavailabilityOut.model_validate(block),
    )


@router.delete("/schools/{school_id}/unavailability/{block_id}", response_model=ActionResult[None])
def delete_unavailability(
    school_id: str,
    block_id: str,
    current_user: User = Depends(get_school_member),
    db: Session = Depends(get_db),
) -> ActionResult[None]:
    block = availability.get_block(db, school_id=school_id, block_id=block_id)
    _ensure_can_manage(current_user, block.teacher_id)
    availability.delete_block(db, block=block, actor=current_user)
    commit(db)
    return ActionResult[None](message="Unavailability block deleted successfully.")
