"""Error handling helpers: every failure becomes a toast, none is fatal."""
from typing import Any, Callable, Dict, Optional
import logging

from src.integrations.policy.response_wrappers import ApiError, IntegrationResponseError
from src.portal.validation import FormValidationError

logger = logging.getLogger(__name__)

Toast = Dict[str, Any]
Notifier = Callable[[Toast], None]

NO_ACTIVE_MSA = "NO_ACTIVE_MSA"


class DuplicateCandidateError(Exception):
    """Raised when a candidate submission is blocked by an active duplicate warning."""

    def __init__(self, message: str = "This candidate already exists in the system", warning=None, ownership=None):
        super().__init__(message)
        self.message = message
        self.warning = warning
        self.ownership = ownership


def log_notifier(toast: Toast) -> None:
    """Default notifier: toasts go to the log when no UI sink is attached."""
    level = logging.WARNING if toast.get("variant") == "destructive" else logging.INFO
    logger.log(level, "[Toast] %s: %s", toast.get("title"), toast.get("description"))


def requires_msa(exc: Exception) -> bool:
    """True when the server blocked an action because no active MSA exists."""
    return isinstance(exc, ApiError) and exc.code == NO_ACTIVE_MSA


class ErrorHandler:
    def classify(self, exc: Exception) -> str:
        if isinstance(exc, FormValidationError):
            return "validation"
        if isinstance(exc, DuplicateCandidateError) or requires_msa(exc):
            return "business_rule"
        if isinstance(exc, ApiError):
            return "validation" if exc.status in (400, 422) or exc.code == "VALIDATION_ERROR" else "network"
        if isinstance(exc, IntegrationResponseError):
            return "network"
        return "internal"

    def to_toast(self, exc: Exception, title: str = "Error", fallback_message: Optional[str] = None) -> Toast:
        kind = self.classify(exc)
        if kind == "internal":
            logger.error("Unhandled exception in portal: %s", exc, exc_info=True)
            description = fallback_message or "An internal error occurred while processing your request. Please try again later."
        elif isinstance(exc, (ApiError, FormValidationError, DuplicateCandidateError)):
            description = exc.message or fallback_message or "Request failed"
        else:
            description = fallback_message or str(exc)

        toast: Toast = {"title": title, "description": description, "variant": "destructive", "kind": kind}
        if isinstance(exc, FormValidationError):
            toast["field_errors"] = dict(exc.field_errors)
        return toast

    def handle_exception(self, exc: Exception, notify: Optional[Notifier] = None, **kwargs) -> Toast:
        toast = self.to_toast(exc, **kwargs)
        (notify or log_notifier)(toast)
        return toast
