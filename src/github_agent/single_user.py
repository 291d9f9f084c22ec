"""
Single-user identity.

GitHub Agent is a personal dashboard: every row belongs to one fixed user
whose profile comes from settings.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from github_agent.config import settings
from github_agent.models.db import User

logger = logging.getLogger(__name__)

SINGLE_USER_ID = uuid.UUID("550e8400-e29b-41d4-a716-446655440000")


@dataclass(frozen=True)
class SingleUser:
    id: uuid.UUID
    email: str
    github_username: str
    name: str


def get_single_user() -> SingleUser:
    return SingleUser(
        id=SINGLE_USER_ID,
        email=settings.single_user_email,
        github_username=settings.single_user_github_username,
        name=settings.single_user_name,
    )


def get_single_user_id() -> uuid.UUID:
    return SINGLE_USER_ID


def ensure_single_user(session: Session) -> User:
    """Insert the users row for the single user if it does not exist yet."""
    user = session.get(User, SINGLE_USER_ID)
    if user:
        return user

    profile = get_single_user()
    user = User(
        id=profile.id,
        email=profile.email,
        github_username=profile.github_username,
        name=profile.name,
    )
    session.add(user)
    session.flush()
    logger.info("Created single user row (%s)", profile.email)
    return user
