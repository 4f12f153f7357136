from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.errors import AuthenticationError
from app.core.security import verify_access_token
from app.core.tier_enforcement import TierEnforcement
from app.models.user import User
from app.schemas.user import CurrentUser
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

def _missing_credentials(detail: str) -> AuthenticationError:
    return AuthenticationError(detail, user_message="You need to sign in to use this feature.")

def create_user_from_claims(auth_user_id: str, claims: dict, db: Session) -> User:
    """Create the local user row for an identity seen for the first time"""
    email = claims.get("email") or f"{auth_user_id}@users.local"  # Fallback email

    metadata = claims.get("user_metadata") or {}
    name = (claims.get("name") or
            metadata.get("full_name") or
            metadata.get("name") or
            None)

    user = User(auth_user_id=auth_user_id, email=email, name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Provisioned user {user.id} for identity {auth_user_id}")
    return user

async def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    authorization: str = request.headers.get("Authorization")

    if not authorization:
        raise _missing_credentials("Authorization header missing")

    auth_parts = authorization.split()
    if len(auth_parts) != 2:
        raise _missing_credentials("Invalid authorization header format")

    scheme, token = auth_parts
    if scheme.lower() != "bearer":
        raise _missing_credentials("Invalid authentication scheme")

    identity = await verify_access_token(token)
    auth_user_id = identity["user_id"]

    # Get or create user in database
    user = db.query(User).filter(User.auth_user_id == auth_user_id).first()
    if not user:
        try:
            user = create_user_from_claims(auth_user_id, identity["payload"], db)
        except IntegrityError:
            # Another request provisioned the same identity first
            db.rollback()
            user = db.query(User).filter(User.auth_user_id == auth_user_id).first()
            if not user:
                user = relink_user_by_email(auth_user_id, identity["email"], db)
            if not user:
                raise AuthenticationError("User provisioning failed")

    return user

def relink_user_by_email(auth_user_id: str, email: str, db: Session):
    """
    Attach an existing row to a new identity with the same email, e.g. an
    account re-created at the identity provider. Usage and subscription
    history stay with the row.
    """
    if not email:
        return None

    user = db.query(User).filter(User.email == email).first()
    if not user:
        return None

    logger.warning(f"Re-linking user {user.id} from identity {user.auth_user_id} to {auth_user_id}")
    user.auth_user_id = auth_user_id
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return db.query(User).filter(User.auth_user_id == auth_user_id).first()
    db.refresh(user)
    return user

@router.get("/me", response_model=CurrentUser)
async def get_me(current_user: User = Depends(get_current_user)):
    me = CurrentUser.model_validate(current_user)
    me.is_demo = TierEnforcement.is_demo_identity(current_user)
    return me
