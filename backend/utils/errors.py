"""
Error taxonomy for the progress and gamification core
"""


class StoreError(Exception):
    """The backing store failed or could not be reached"""


class RemoteTimeout(StoreError):
    """A remote call did not answer within its bounded timeout"""


class ProcedureUnavailable(StoreError):
    """A server-side routine is not installed on the backing store"""


class ContractViolation(ValueError):
    """The caller broke the contract of an operation (missing ids, bad input)"""


class MalformedRecord(ContractViolation):
    """A row or procedure response does not have the expected shape"""


class QuizStateError(Exception):
    """A quiz transition was requested from a state where it is not legal"""
