from src.error_handler import DuplicateCandidateError, ErrorHandler, log_notifier, requires_msa
from src.integrations.policy.response_wrappers import ApiError, IntegrationResponseError
from src.portal.validation import FormValidationError


def test_internal_errors_get_generic_message():
    eh = ErrorHandler()
    toasts = []
    out = eh.handle_exception(Exception("boom"), notify=toasts.append)
    assert out["kind"] == "internal"
    assert "internal error" in out["description"].lower()
    assert "boom" not in out["description"]
    assert toasts == [out]


def test_api_error_message_wins_over_fallback():
    eh = ErrorHandler()
    out = eh.to_toast(ApiError("Bureau not found", status=404), title="Failed", fallback_message="Could not load")
    assert out["description"] == "Bureau not found"
    assert out["variant"] == "destructive"
    assert out["kind"] == "network"


def test_empty_api_message_uses_fallback():
    out = ErrorHandler().to_toast(ApiError("", status=500), fallback_message="Could not create contract")
    assert out["description"] == "Could not create contract"


def test_classification():
    eh = ErrorHandler()
    assert eh.classify(FormValidationError({"email": "Invalid email address"})) == "validation"
    assert eh.classify(ApiError("bad", status=422)) == "validation"
    assert eh.classify(ApiError("no msa", code="NO_ACTIVE_MSA", status=400)) == "business_rule"
    assert eh.classify(DuplicateCandidateError()) == "business_rule"
    assert eh.classify(IntegrationResponseError("garbled")) == "network"


def test_validation_toast_carries_field_errors():
    out = ErrorHandler().to_toast(FormValidationError({"reason": "required"}, message="Rejection Reason Required"))
    assert out["description"] == "Rejection Reason Required"
    assert out["field_errors"] == {"reason": "required"}


def test_requires_msa():
    assert requires_msa(ApiError("x", code="NO_ACTIVE_MSA"))
    assert not requires_msa(ApiError("x", code="NOT_FOUND"))
    assert not requires_msa(ValueError("NO_ACTIVE_MSA"))


def test_log_notifier_uses_warning_for_destructive(caplog):
    log_notifier({"title": "Error", "description": "went wrong", "variant": "destructive"})
    assert caplog.records[-1].levelname == "WARNING"
    assert "went wrong" in caplog.text
