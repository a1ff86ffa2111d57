# bintrack/routers/accounts.py
"""
Consumer accounts and support tickets.
POST /register — create an account, returns the generated CA number.
POST /login    — check name + password.
POST /support  — file a support ticket.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from bintrack.database import get_db
from bintrack.exceptions import PersistenceError
from bintrack.schemas.account import ConsumerCreate, ConsumerLogin, LoginOut, RegisterOut, SupportRequestCreate
from bintrack.services import account_service
from bintrack.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/register", response_model=RegisterOut, status_code=status.HTTP_201_CREATED, summary="Register a consumer")
def register_consumer(body: ConsumerCreate, db: Session = Depends(get_db)):
    try:
        consumer = account_service.create_consumer(
            db, body.name, body.address, body.contactNumber, body.password
        )
    except PersistenceError as e:
        logger.error(f"[ACCOUNT] {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error creating account")
    return {"message": "Account created successfully", "caNumber": consumer.ca_number}


@router.post("/login", response_model=LoginOut, summary="Consumer login by name")
def login_consumer(body: ConsumerLogin, db: Session = Depends(get_db)):
    try:
        consumer = account_service.find_consumer_by_name(db, body.name)
    except PersistenceError as e:
        logger.error(f"[ACCOUNT] {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error during login")

    if consumer is None:
        return _error(status.HTTP_404_NOT_FOUND, "Consumer not found")
    try:
        password_ok = account_service.verify_password(body.password, consumer.password_hash)
    except ValueError as e:
        # stored hash is not a valid bcrypt hash
        logger.error(f"[ACCOUNT] Password check failed for {consumer.name}: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error during login")
    if not password_ok:
        return _error(status.HTTP_401_UNAUTHORIZED, "Invalid password")

    return {
        "message": "Login successful",
        "consumer": {
            "name": consumer.name,
            "address": consumer.address,
            "caNumber": consumer.ca_number,
        },
    }


@router.post("/support", status_code=status.HTTP_201_CREATED, summary="Submit a support request")
def submit_support_request(body: SupportRequestCreate, db: Session = Depends(get_db)):
    try:
        account_service.create_support_request(db, body.caNumber, body.name, body.subject)
    except PersistenceError as e:
        logger.error(f"[SUPPORT] {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error submitting support request")
    return {"message": "Support request submitted successfully"}
