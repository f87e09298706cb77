from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CLIENT_EMAIL: Optional[str] = None
    FIREBASE_PRIVATE_KEY: Optional[str] = None
    FIREBASE_SERVICE_ACCOUNT_PATH: Optional[str] = None

    # Comma separated; first layer of the privilege check
    PRIVILEGED_EMAILS: str = ""

    STORE_TIMEOUT_SECONDS: float = 5.0
    TOKEN_CLOCK_SKEW_SECONDS: int = 5

    BUY_COURSE_ROUTE: str = "/buy-course"
    LESSONS_ROUTE: str = "/classes/{course_id}/lessons"

    ARCHIVE_METADATA_URL: str = "https://archive.org/metadata"
    ARCHIVE_TIMEOUT_SECONDS: float = 8.0

    DRAFTS_DIR: str = ".lecturegate_drafts"

    AUDIT_TO_FIRESTORE: bool = False
    ALLOWED_ORIGINS: str = "*"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def privileged_emails(self) -> List[str]:
        return [e.strip().lower() for e in self.PRIVILEGED_EMAILS.split(",") if e.strip()]

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    def lessons_target(self, course_id: str) -> str:
        return self.LESSONS_ROUTE.format(course_id=course_id)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
