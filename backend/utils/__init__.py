"""
Kodein Utilities
"""
from .jwt_handler import create_access_token, verify_token, get_current_user
from .errors import (
    StoreError, RemoteTimeout, ProcedureUnavailable,
    ContractViolation, MalformedRecord, QuizStateError
)
from .messages import render, resolve_locale
