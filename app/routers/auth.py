import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from app.db import get_db
from app.models.user import User
from app.schemas.user import Token, UserCreate, UserResponse
from app.utils.access import Actor
from app.utils.auth import get_current_user, get_password_hash, token_for_user, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, db: Session = Depends(get_db)):
    """
    Register a consumer, brand owner or staff account.
    """
    email = user.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        logger.error(f"Email already registered: {email}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    db_user = User(
        name=user.name,
        email=email,
        hashed_password=get_password_hash(user.password),
        role=user.role.value,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.debug(f"Registered {db_user.role} {db_user.id}")
    return db_user


@router.post("/login", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    Exchange email (sent as `username`) and password for a bearer token.
    """
    user = db.query(User).filter(User.email == form_data.username.strip().lower()).first()
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"access_token": token_for_user(user), "token_type": "bearer"}


@router.get("/me", response_model=UserResponse)
def me(current_user: Actor = Depends(get_current_user)):
    return current_user
