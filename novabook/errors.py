class LibraryError(Exception):
    """Raised for validation failures, rejected library rules and storage errors.

    Carries a human-readable message only; callers show ``str(error)`` to the user.
    """
