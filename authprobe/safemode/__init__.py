"""Session-errors mode: policy-layer classification of deny-all session refusals."""
from .classifier import ClassificationResult, PolicyClassification, classify_from_error_message

__all__ = ["ClassificationResult", "PolicyClassification", "classify_from_error_message"]
