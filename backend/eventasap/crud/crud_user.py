from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple

from .. import models, schemas
from ..utils.auth import get_password_hash, normalize_email


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.email == normalize_email(email))
        .first()
    )


def create_user(db: Session, user_in: schemas.UserCreate) -> models.User:
    db_user = models.User(
        email=normalize_email(user_in.email),
        password=get_password_hash(user_in.password),
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        phone_number=user_in.phone_number,
        user_type=models.UserType(user_in.user_type.value),
        business_name=user_in.business_name,
        category=user_in.category,
        city=user_in.city,
        description=user_in.description,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def search_vendors(
    db: Session,
    search: Optional[str] = None,
    category: Optional[str] = None,
    city: Optional[str] = None,
    skip: int = 0,
    limit: int = 12,
) -> Tuple[List[models.User], int]:
    """Active vendors matching the filters, with the unpaginated total."""
    query = db.query(models.User).filter(
        models.User.user_type == models.UserType.VENDOR,
        models.User.is_active.is_(True),
    )
    if category:
        query = query.filter(func.lower(models.User.category) == category.strip().lower())
    if city:
        query = query.filter(models.User.city.ilike(f"%{city.strip()}%"))
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.User.business_name.ilike(term),
                models.User.description.ilike(term),
                models.User.first_name.ilike(term),
                models.User.last_name.ilike(term),
            )
        )
    total = query.count()
    vendors = query.order_by(models.User.id).offset(skip).limit(limit).all()
    return vendors, total
