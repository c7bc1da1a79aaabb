"""Signing, transport, and response parsing for outbound AWS Query API calls."""
#
# KEY MODULES:
# - signer.py: Form-encoded request building and SigV4 signing (botocore)
# - transport.py: Bounded async HTTP execution (httpx)
# - sender.py: Sign-per-attempt sending with retry/backoff
# - parser.py: XML error envelope extraction
#
from .models import HttpExchange, HttpRequest, TransportResponse
from .parser import ErrorDetails, is_success_status, parse_error_code, parse_error_details, parse_request_id
from .signer import SigningContext, build_unsigned_request, sign_request
from .transport import HttpTransport, Transport
from .sender import RETRYABLE_STATUSES, RequestSender

__all__ = [
    "HttpExchange",
    "HttpRequest",
    "TransportResponse",
    "ErrorDetails",
    "is_success_status",
    "parse_error_code",
    "parse_error_details",
    "parse_request_id",
    "SigningContext",
    "build_unsigned_request",
    "sign_request",
    "HttpTransport",
    "Transport",
    "RETRYABLE_STATUSES",
    "RequestSender",
]
