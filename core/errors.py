# core/errors.py

from typing import Optional


class UpstreamFetchError(Exception):
    """
    A collection could not be loaded from the society backend.

    For financial collections this aborts the whole aggregation cycle;
    the previous snapshot stays on screen.
    """

    def __init__(self, collection: str, detail: str, status_code: Optional[int] = None):
        self.collection = collection
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"Failed to fetch {collection}: {detail}")


class StateTransitionError(Exception):
    """
    A mark-read call failed upstream. The optimistic local transition
    has already been rolled back when this is raised.
    """

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


def extract_upstream_error(error: Exception) -> str:
    """
    Safely extract readable details from upstream client errors.
    Handles:
      • UpstreamFetchError / StateTransitionError
      • httpx errors with a response attached
      • Generic Python exceptions
    """

    # Case 1: our own errors
    if hasattr(error, "detail"):
        try:
            return str(error.detail)
        except Exception:
            pass

    # Case 2: httpx.HTTPStatusError carries the response
    response = getattr(error, "response", None)
    if response is not None:
        try:
            return f"HTTP {response.status_code}: {response.text[:200]}"
        except Exception:
            pass

    # Case 3: Plain string fallback
    try:
        return str(error) or error.__class__.__name__
    except Exception:
        return "Unknown upstream error"
