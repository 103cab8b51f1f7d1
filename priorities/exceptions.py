class PriorityBoardError(Exception):
    """Base error carrying the message shown to the user."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PriorityBoardError):
    """A required text field is empty or a value is outside its allowed set."""


class DuplicateAssignmentError(PriorityBoardError):
    """The priority is already part of the employee's list."""
    status_code = 409


class CorruptBackupError(PriorityBoardError):
    """A backup payload is missing a collection or is not valid JSON."""


class RecordNotFoundError(PriorityBoardError):
    status_code = 404
