from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from paddock.core.security import get_current_user
from paddock.db.session import get_db
from paddock.models.predictions import User
from paddock.services import users as user_service

router = APIRouter()

@router.delete("/me")
def delete_my_account(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    user_service.delete_user_and_data(db, user.id)
    return {"message": "Account deleted"}
