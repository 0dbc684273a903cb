import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from paddock.core.exceptions import NotFoundError
from paddock.models.predictions import User

logger = logging.getLogger(__name__)

TEST_USER_FACEBOOK_ID = "test-user"


def process_oauth_login(db: Session, attributes: Dict) -> User:
    """Find or create the user behind a Facebook profile."""
    facebook_id = str(attributes["id"])

    user = find_by_facebook_id(db, facebook_id)
    if user is not None:
        return user

    # Facebook does not always share the email address
    email = (attributes.get("email") or "").strip() or f"{facebook_id}@paddock.local"
    user = User(
        facebook_id=facebook_id,
        name=str(attributes.get("name") or "F1 Fan"),
        email=email,
        profile_picture_url=f"https://graph.facebook.com/{facebook_id}/picture?type=large",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s for facebook id %s", user.id, facebook_id)
    return user

def find_by_facebook_id(db: Session, facebook_id: str) -> Optional[User]:
    return db.query(User).filter_by(facebook_id=facebook_id).first()

def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User not found with id: {user_id}")
    return user

def get_or_create_test_user(db: Session) -> User:
    user = find_by_facebook_id(db, TEST_USER_FACEBOOK_ID)
    if user is None:
        user = User(
            facebook_id=TEST_USER_FACEBOOK_ID,
            name="Test User",
            email="testuser@paddock.local",
            is_admin=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    return user

def delete_user_and_data(db: Session, user_id: int) -> None:
    user = get_user(db, user_id)
    # Predictions go with the user through the relationship cascade
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s and their predictions", user_id)
