"""User feature dependencies."""

from fastapi import Depends

from src.features.auth.dependencies import get_credential_store, get_rotation_service
from src.features.auth.rotation import RefreshRotationService
from src.features.auth.store import CredentialStore

from .service import UserService


def get_user_service(
    store: CredentialStore = Depends(get_credential_store),
    rotation: RefreshRotationService = Depends(get_rotation_service),
) -> UserService:
    return UserService(store, rotation)
