# app/services/archives/errors.py
"""Exceptions raised by the archive services and mapped to HTTP errors by the router."""


class ArchiveError(Exception):
    """Base class for archive subsystem errors."""


class InvalidEventYearError(ArchiveError, ValueError):
    """Year is not an integer or falls outside the plausible range."""


class ArchiveAlreadyExistsError(ArchiveError):
    def __init__(self, year: int):
        self.year = year
        super().__init__(f"Archive for {year} already exists")


class ArchiveNotFoundError(ArchiveError):
    def __init__(self, year: int):
        self.year = year
        super().__init__(f"Archive for {year} not found")


class NoDataToArchiveError(ArchiveError):
    def __init__(self, year: int):
        self.year = year
        super().__init__("No data to archive")


class InvalidConfirmationError(ArchiveError, ValueError):
    def __init__(self, expected: str):
        super().__init__(f'Confirmation required: type "{expected}"')


class ArchiveStorageError(ArchiveError):
    """Storage failed; nothing was applied."""
