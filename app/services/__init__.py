"""Services package"""
from app.services.credential_store import CredentialStore
from app.services.session_ledger import SessionLedger
from app.services.auth_service import AuthService, auth_service

__all__ = [
    'CredentialStore',
    'SessionLedger',
    'AuthService',
    'auth_service',
]
