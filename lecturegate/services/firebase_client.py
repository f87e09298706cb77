"""Centralized Firebase initialization from a service account file or FIREBASE_* settings."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from lecturegate.core.config import get_settings


@lru_cache(maxsize=1)
def _load_service_account_payload() -> Optional[Dict[str, Any]]:
    settings = get_settings()
    if settings.FIREBASE_SERVICE_ACCOUNT_PATH:
        path = Path(settings.FIREBASE_SERVICE_ACCOUNT_PATH)
        if path.exists():
            return json.loads(path.read_text())

    project_id = settings.FIREBASE_PROJECT_ID
    client_email = settings.FIREBASE_CLIENT_EMAIL
    private_key = (settings.FIREBASE_PRIVATE_KEY or "").replace("\\n", "\n")

    if not (project_id and client_email and private_key):
        # Application default credentials (GCP runtime or emulator)
        return None

    return {
        "type": "service_account",
        "project_id": project_id,
        "client_email": client_email,
        "private_key": private_key,
        "token_uri": "https://oauth2.googleapis.com/token",
    }


def get_firebase_app() -> firebase_admin.App:
    if firebase_admin._apps:
        return firebase_admin.get_app()

    payload = _load_service_account_payload()
    if payload is None:
        project_id = get_settings().FIREBASE_PROJECT_ID
        options = {"projectId": project_id} if project_id else None
        return firebase_admin.initialize_app(options=options)

    cred = credentials.Certificate(payload)
    return firebase_admin.initialize_app(cred)


def get_firestore_client() -> firestore.Client:
    app = get_firebase_app()
    return firestore.client(app)
