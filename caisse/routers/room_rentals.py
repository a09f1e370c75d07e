from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from caisse.db import get_db
from caisse.deps import require_user
from caisse.models.core import RoomRental
from caisse.schemas.room_rentals import RoomRentalIn, RoomRentalPatch, RoomRentalOut
from caisse.services.room_rentals import create_rental, update_rental, delete_rental
from caisse.util.dates import day_bounds

router = APIRouter(prefix="/api/room-rentals", tags=["room-rentals"])


def _get_or_404(db: Session, rental_id: int) -> RoomRental:
    r = db.get(RoomRental, rental_id)
    if not r:
        raise HTTPException(404, detail=f"Room rental with ID {rental_id} not found")
    return r


@router.get("", response_model=List[RoomRentalOut])
def list_rentals(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    sub: int = Depends(require_user),
):
    q = db.query(RoomRental)
    if start_date:
        lo, hi = day_bounds(start_date, end_date or start_date)
        q = q.filter(RoomRental.date >= lo, RoomRental.date < hi)
    return q.order_by(RoomRental.date.desc(), RoomRental.start_time.desc()).all()


@router.get("/{rental_id}", response_model=RoomRentalOut)
def get_rental(rental_id: int, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    return _get_or_404(db, rental_id)


@router.post("", response_model=RoomRentalOut, status_code=201)
def add_rental(body: RoomRentalIn, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    r = create_rental(db, body.model_dump(), sub)
    db.commit()
    db.refresh(r)
    return r


@router.patch("/{rental_id}", response_model=RoomRentalOut)
def edit_rental(rental_id: int, body: RoomRentalPatch, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    r = _get_or_404(db, rental_id)
    update_rental(db, r, body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(r)
    return r


@router.delete("/{rental_id}")
def remove_rental(rental_id: int, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    r = _get_or_404(db, rental_id)
    delete_rental(db, r)
    db.commit()
    return {"message": f"Room rental with ID {rental_id} deleted successfully"}
