from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth.utils import get_current_user
from db.database import get_db
from db.models import COACH_PERSONAS, User
from services.errors import ValidationError
from services.habit_service import delete_account_data

router = APIRouter(prefix="/users", tags=["users"])


def _profile(user: User) -> dict:
    return {
        "user": {
            "id": user.id,
            "email": user.email,
            "name": user.name or "",
            "coachPersona": user.coach_persona,
            "createdAt": user.created_at.isoformat() if user.created_at else None,
        }
    }


class NameUpdateRequest(BaseModel):
    name: Optional[str] = None


class CoachPersonaRequest(BaseModel):
    coach_persona: Optional[str] = Field(default=None, alias="coachPersona")

    model_config = {"populate_by_name": True}


@router.get("/me")
def get_profile(user: User = Depends(get_current_user)):
    return _profile(user)


@router.patch("/name")
def update_name(
    req: NameUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if req.name is None:
        raise ValidationError("name is required")
    user.name = req.name.strip()
    db.commit()
    db.refresh(user)
    return _profile(user)


@router.patch("/coach")
def update_coach_persona(
    req: CoachPersonaRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if req.coach_persona not in COACH_PERSONAS:
        raise ValidationError("Invalid coachPersona")
    user.coach_persona = req.coach_persona
    db.commit()
    db.refresh(user)
    return _profile(user)


@router.delete("/me")
def delete_account(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    delete_account_data(db, user)
    return {"message": "Account deleted"}
