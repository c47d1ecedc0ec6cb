"""
API Dependencies — repositories, storage and outbound clients.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.models.tract import Tract
from app.domain.models.user import User
from app.domain.repositories.download_repository import DownloadRepository
from app.domain.repositories.tract_repository import TractRepository
from app.domain.repositories.user_repository import UserRepository
from app.infrastructure.database import get_db
from app.infrastructure.mail_api import MailAPIClient
from app.infrastructure.repositories.download_repository import SQLAlchemyDownloadRepository
from app.infrastructure.repositories.tract_repository import SQLAlchemyTractRepository
from app.infrastructure.repositories.user_repository import SQLAlchemyUserRepository
from app.infrastructure.storage import TractFileStorage


def get_tract_repository(db: Session = Depends(get_db)) -> TractRepository:
    return SQLAlchemyTractRepository(db, Tract)


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return SQLAlchemyUserRepository(db, User)


def get_download_repository(db: Session = Depends(get_db)) -> DownloadRepository:
    return SQLAlchemyDownloadRepository(db)


def get_storage() -> TractFileStorage:
    return TractFileStorage(get_settings().MEDIA_ROOT)


def get_mailer() -> MailAPIClient:
    return MailAPIClient()
