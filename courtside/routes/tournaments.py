from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from courtside.database import get_session
from courtside.models.category import Category, CategoryFormat
from courtside.models.tournament import Tournament
from courtside.utils.group_config import is_power_of_two

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TournamentResponse(BaseModel):
    id: int
    name: str
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str
    format: CategoryFormat = CategoryFormat.knockout_only
    group_count: Optional[int] = None
    advance_per_group: Optional[int] = None
    knockout_size: Optional[int] = None
    enable_third_place: bool = False
    rule_config: Optional[Dict[str, Any]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("knockout_size")
    @classmethod
    def validate_knockout_size(cls, v):
        if v is not None and (v < 2 or not is_power_of_two(v)):
            raise ValueError("knockout_size must be a power of two >= 2")
        return v

    @model_validator(mode="after")
    def validate_group_fields(self):
        if self.format == CategoryFormat.group_then_knockout:
            if not self.group_count or not self.advance_per_group:
                raise ValueError("group_then_knockout requires group_count and advance_per_group")
        return self


class CategoryResponse(BaseModel):
    id: int
    tournament_id: int
    name: str
    format: str
    group_count: Optional[int] = None
    advance_per_group: Optional[int] = None
    knockout_size: Optional[int] = None
    enable_third_place: bool
    rule_config: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    tournament = Tournament(**tournament_data.model_dump())
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.get("/tournaments/{tournament_id}/categories", response_model=List[CategoryResponse])
def list_categories(tournament_id: int, session: Session = Depends(get_session)):
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return session.exec(
        select(Category).where(Category.tournament_id == tournament_id).order_by(Category.id)
    ).all()


@router.post("/tournaments/{tournament_id}/categories", response_model=CategoryResponse, status_code=201)
def create_category(tournament_id: int, category_data: CategoryCreate, session: Session = Depends(get_session)):
    """Create a category with its format configuration"""
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")

    data = category_data.model_dump()
    data["format"] = category_data.format.value
    category = Category(tournament_id=tournament_id, **data)
    session.add(category)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(
            status_code=409, detail=f"Category '{category_data.name}' already exists for this tournament"
        )
    session.refresh(category)
    return category


@router.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category(category_id: int, session: Session = Depends(get_session)):
    category = session.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category
