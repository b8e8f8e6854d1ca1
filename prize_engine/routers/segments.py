
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from prize_engine.database import get_db
from prize_engine.schemas.segment import SegmentCreate, SegmentResponse, SegmentUpdate
from prize_engine.services.segment_catalog import SegmentCatalog

router = APIRouter(prefix="/segments", tags=["segments"])


@router.post("", response_model=SegmentResponse, status_code=201)
def create_segment(segment: SegmentCreate, db: Session = Depends(get_db)):
    return SegmentCatalog.create_segment(db, segment)


@router.get("", response_model=List[SegmentResponse])
def list_segments(db: Session = Depends(get_db)):
    return SegmentCatalog.list_segments(db)


@router.get("/{segment_id}", response_model=SegmentResponse)
def get_segment(segment_id: int, db: Session = Depends(get_db)):
    s = SegmentCatalog.get_segment(db, segment_id)
    if not s:
        raise HTTPException(status_code=404, detail="Segment not found")
    return s


@router.put("/{segment_id}", response_model=SegmentResponse)
def update_segment(segment_id: int, payload: SegmentUpdate, db: Session = Depends(get_db)):
    updated = SegmentCatalog.update_segment(db, segment_id, payload)
    if not updated:
        raise HTTPException(status_code=404, detail="Segment not found")
    return updated
