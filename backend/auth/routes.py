from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from auth.account_service import authenticate_user, register_user
from auth.models import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from auth.utils import get_current_user
from db.database import get_db
from db.models import User

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    user, token = register_user(db, req.email, req.password, req.name)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user, token = authenticate_user(db, req.email, req.password)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return user
