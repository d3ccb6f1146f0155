from __future__ import annotations


class StoreError(Exception):
    """
    A relation-store call failed in a way the caller should see.
    """


class StoreUnavailableError(StoreError):
    """
    Transient store failure (connection / timeout) that survived every retry.
    """

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts
