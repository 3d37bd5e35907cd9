"""
HTTP translation of domain errors for the routers
"""
from contextlib import contextmanager
import logging

from fastapi import HTTPException

from utils.errors import ContractViolation, MalformedRecord, QuizStateError, StoreError

logger = logging.getLogger(__name__)


@contextmanager
def handle_errors(action: str):
    """
    Re-raise HTTPException as is; map domain errors to status codes; log
    anything else and answer a generic 500.
    """
    try:
        yield
    except HTTPException:
        raise
    except QuizStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MalformedRecord as e:
        logger.error(f"{action} error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to {action}")
    except ContractViolation as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        logger.error(f"{action} error: {e}")
        raise HTTPException(status_code=503, detail=f"Failed to {action}, please try again")
    except Exception as e:
        logger.error(f"{action} error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to {action}")
