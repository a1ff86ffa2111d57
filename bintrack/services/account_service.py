# bintrack/services/account_service.py
"""
Consumer account and support ticket helpers.
Used by the accounts and support routers. Database failures are rolled back
and re-raised as PersistenceError so routers can answer with a plain 500.
"""

import secrets
from datetime import datetime
from typing import Optional

import bcrypt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bintrack.config import settings
from bintrack.exceptions import PersistenceError
from bintrack.models.consumer import Consumer
from bintrack.models.support_request import SupportRequest
from bintrack.utils.logger import get_logger

logger = get_logger(__name__)


def generate_ca_number() -> str:
    """Random 10-digit consumer account number (never starts with 0)."""
    return str(1_000_000_000 + secrets.randbelow(9_000_000_000))


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.PASSWORD_HASH_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def create_consumer(db: Session, name: str, address: str, contact_number: str, password: str) -> Consumer:
    consumer = Consumer(
        name=name,
        address=address,
        contact_number=contact_number,
        password_hash=hash_password(password),
        ca_number=generate_ca_number(),
        created_at=datetime.utcnow(),
    )
    try:
        db.add(consumer)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Could not create consumer '{name}': {e}") from e
    logger.info(f"[ACCOUNT] Registered consumer {name} (CA {consumer.ca_number})")
    return consumer


def find_consumer_by_name(db: Session, name: str) -> Optional[Consumer]:
    try:
        return db.query(Consumer).filter(Consumer.name == name).first()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Could not look up consumer '{name}': {e}") from e


def create_support_request(db: Session, ca_number: str, name: str, subject: str) -> SupportRequest:
    ticket = SupportRequest(ca_number=ca_number, name=name, subject=subject,
                            created_at=datetime.utcnow())
    try:
        db.add(ticket)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Could not save support request for CA {ca_number}: {e}") from e
    logger.info(f"[SUPPORT] Ticket from CA {ca_number}: {subject}")
    return ticket
